"""Development entrypoint: ``python app.py`` (uses APP_ENV / .env settings)."""

import sys
from pathlib import Path

PACKAGE_ROOT = Path(__file__).resolve().parent / "src" / "campus_attendance"
if str(PACKAGE_ROOT) not in sys.path:
    sys.path.insert(0, str(PACKAGE_ROOT))

from campus_attendance.main import create_app

app = create_app()

if __name__ == "__main__":
    app.run(debug=app.config.get("DEBUG", False))
