# backend/wsgi.py
from brokerage import create_app

app = create_app()
