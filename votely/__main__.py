import uvicorn

from votely.config import HOST, PORT
from votely.main import create_app


def main():
    uvicorn.run(create_app(), host=HOST, port=PORT)


if __name__ == "__main__":
    main()
