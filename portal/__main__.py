import uvicorn

from portal.config import settings


def main() -> None:
    """Serve the API on the configured HOST and PORT."""
    uvicorn.run("portal.main:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
