"""Development entrypoint: `python app.py` (use a WSGI server in production)."""

import os

from work_report_system.main import create_app

app = create_app()

if __name__ == "__main__":
    # The reloader would start a second queue worker in the child process.
    app.run(host=os.getenv("HOST", "127.0.0.1"), port=int(os.getenv("PORT", "5000")), use_reloader=False)
