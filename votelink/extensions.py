from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_jwt_extended import JWTManager
from flask_marshmallow import Marshmallow
from flask_mail import Mail

db = SQLAlchemy()
migrate = Migrate()
# JWTs are minted by the identity service; this app only verifies them
jwt = JWTManager()
ma = Marshmallow()
mail = Mail()
