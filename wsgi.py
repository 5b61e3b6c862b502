#!/usr/bin/env python3
"""
WSGI Entry Point for Production Deployment
Use with: gunicorn -c gunicorn.conf.py wsgi:app
"""

import os

# Set production environment
os.environ.setdefault('FLASK_ENV', 'production')

from pitchside.main import create_app

app = create_app()
