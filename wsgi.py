#!/usr/bin/env python3
"""
WSGI entry point for production deployment (Gunicorn, mod_wsgi).
"""

from gstinvoice import create_app

application = create_app('production')

if __name__ == "__main__":
    application.run()
