import uvicorn

from country_api.config import settings


def main() -> None:
    uvicorn.run("country_api.main:app", host=settings.HOST, port=settings.PORT, reload=False)


if __name__ == "__main__":
    main()
