from flask_sqlalchemy import SQLAlchemy
from flask_marshmallow import Marshmallow
from flask_migrate import Migrate
from flask_jwt_extended import JWTManager

# extensions.py
# Media binaries live on the external host (see utils/services/media.py);
# SQLAlchemy is the only local datastore.

jwt = JWTManager()

db = SQLAlchemy()
migrate = Migrate(db=db)

ma = Marshmallow()
