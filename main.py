# coding: utf8
from gevent import monkey

monkey.patch_all()

import os

from dotenv import load_dotenv
from flask import request

dotenv_path = os.path.join(os.path.dirname(__file__), ".env")
load_dotenv(dotenv_path=dotenv_path, override=True)

from app import create_app  # noqa
from app.config import configs as config  # noqa

config_name = os.environ.get("FLASK_CONFIG") or "develop"
config_app = config[config_name]
application = create_app(config_app)


@application.route("/", methods=["GET"])
def index():
    params = dict(request.args)
    is_show_headers = params.get("show_header", "false").lower() == "true"
    if is_show_headers:
        return {
            "message": "Order & Payment API",
            "headers": dict(request.headers),
        }
    return {"message": "Order & Payment API"}


if __name__ == "__main__":
    application.run()
