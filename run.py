#!/usr/bin/env python
import os

from labtrack import create_app
from labtrack.extensions import socketio

app = create_app()

if __name__ == '__main__':
    # Production is served by gunicorn with the eventlet worker
    socketio.run(
        app,
        host=os.environ.get('HOST', '127.0.0.1'),
        port=int(os.environ.get('PORT', 5000)),
        debug=app.config['DEBUG']
    )
