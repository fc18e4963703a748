import uvicorn

from .constants import HOST, PORT
from .logger import get_logger, setup_logging

logger = get_logger(__name__)


def main() -> None:
    setup_logging()
    logger.info("Starting Fakester server on %s:%s", HOST, PORT)
    uvicorn.run("fakester.app:app", host=HOST, port=PORT)


if __name__ == "__main__":
    main()
