# backend/wsgi.py
from jewelstore import create_app

app = create_app()
