import sys
import os

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from dotenv import load_dotenv

load_dotenv()

from app import create_app  # noqa
from app.config import configs  # noqa
from app.extensions import db  # noqa
from app.lib.logger import logger  # noqa


def migrate():
    app = create_app(configs[os.environ.get("FLASK_CONFIG") or "develop"])
    with app.app_context():
        db.create_all()
        logger.info(
            "Tables ready: {}".format(", ".join(sorted(db.metadata.tables.keys())))
        )


if __name__ == "__main__":
    migrate()
