import os
from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_session import Session

if os.getenv("FLASK_DEBUG") == "1":
    from dotenv import load_dotenv
    load_dotenv()

base_dir = os.path.abspath(os.path.dirname(__file__))
app = Flask(__name__,
            template_folder=os.path.join(base_dir, "templates"),
            static_folder=os.path.join(base_dir, "static"))

app.secret_key = os.getenv("SECRET_KEY", "dev")

if os.getenv("FLASK_DEBUG") == "1":
    app.config["SESSION_COOKIE_SECURE"] = False
else:
    app.config["SESSION_COOKIE_SECURE"] = True

os.makedirs(app.instance_path, exist_ok=True)
db_path = os.path.join(app.instance_path, "site.db")
app.config['SQLALCHEMY_DATABASE_URI'] = os.getenv("DATABASE_URL", f"sqlite:///{db_path}")
app.config["SESSION_COOKIE_HTTPONLY"] = True
app.config["SESSION_COOKIE_SAMESITE"] = "Lax"
app.config['SESSION_TYPE'] = 'filesystem'
app.config['SESSION_FILE_DIR'] = os.getenv("SESSION_FILE_DIR", os.path.join(app.instance_path, "flask_session"))
app.config['MAX_CONTENT_LENGTH'] = int(os.getenv("MAX_UPLOAD_MB", "10")) * 1024 * 1024

db=SQLAlchemy(app)

from .models import PlaylistHistory
with app.app_context():
    db.create_all()

Session(app)

from .model_gpt import GPTModel
# swapped for a fake in tests; any object with the same five methods works
app.extensions["tunedetective.model"] = GPTModel()

from .routes import routes
app.register_blueprint(routes)
