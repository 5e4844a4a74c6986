"""Entry point: ``flask --app app run`` / ``flask --app app run-job reminders morning``."""

from src.office_tracker.office_tracker.main import create_app

app = create_app()

if __name__ == "__main__":
    app.run(debug=app.config.get("DEBUG", False))
