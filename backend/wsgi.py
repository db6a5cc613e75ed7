import atexit

from badcards.extensions import MANAGER_KEY
from badcards.server import create_app

app, socketio = create_app()

atexit.register(app.extensions[MANAGER_KEY].shutdown)
