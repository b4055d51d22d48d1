from slidecite.config import Config
from slidecite.utils.logging_setup import setup_logging
from slidecite.web import app as application

setup_logging(Config.LOG_DIR, Config.LOG_LEVEL)

if __name__ == "__main__":
    application.run(debug=True)
