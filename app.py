"""
Nairobi Air Quality Platform
Application Entry Point

Run the API with ``python app.py`` or use the CLI commands with
``flask --app app <command>``. Background workers start with
``celery -A app.celery_app worker``.
"""

import os

from airwatch import create_app

app = create_app()
celery_app = app.extensions['celery']

if __name__ == '__main__':
    app.run(debug=os.environ.get('FLASK_DEBUG') == '1', host='0.0.0.0',
            port=int(os.environ.get('PORT', 5000)))
