# backend/wsgi.py
from fightpass import create_app

app = create_app()
