# backend/wsgi.py
from gebeyanet import create_app

app = create_app()
