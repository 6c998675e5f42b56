"""
Entry point for Flask.

Usage (from project root):

    flask --app run.py db init        # once
    flask --app run.py db migrate -m "initial"
    flask --app run.py db upgrade
    flask --app run.py --debug run

"""

from billing import create_app

# WSGI application object. `flask run` looks for this `app` variable.
app = create_app()

if __name__ == "__main__":
    # For direct `python run.py` usage (dev only).
    app.run(debug=True)
