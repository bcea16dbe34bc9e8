# backend/wsgi.py
from shopman import create_app

app = create_app()
