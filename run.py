#!/usr/bin/env python3
"""
Development server for the GST invoicing application.
"""
import argparse
from gstinvoice import create_app

app = create_app()

if __name__ == '__main__':
    parser = argparse.ArgumentParser(description='Run the development server.')
    parser.add_argument('--port', type=int, default=5010)
    parser.add_argument('--host', default='127.0.0.1')
    args = parser.parse_args()

    app.run(debug=app.config.get('DEBUG', False), host=args.host, port=args.port)
