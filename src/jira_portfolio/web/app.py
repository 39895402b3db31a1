"""Flask application factory for JIRA Portfolio web API."""

import logging
import os

from flask import Flask


def create_app() -> Flask:
    """Create and configure the Flask application."""
    app = Flask(__name__)

    app.config["SECRET_KEY"] = "jira-portfolio-local-dev"
    app.json.sort_keys = False

    from jira_portfolio.web.routes import bp
    app.register_blueprint(bp)

    return app


def main() -> None:
    """Run the development server."""
    logging.basicConfig(
        level=os.environ.get("JIRA_PORTFOLIO_LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    port = int(os.environ.get("JIRA_PORTFOLIO_PORT", "5000"))
    create_app().run(host="127.0.0.1", port=port)


if __name__ == "__main__":
    main()
