import argparse

import uvicorn

from .config import settings
from .main_app import create_app


def main() -> None:
    parser = argparse.ArgumentParser("sessionkeeper")
    parser.add_argument("--host", default=settings.api_host)
    parser.add_argument("--port", type=int, default=settings.api_port)
    args = parser.parse_args()

    # TLS is terminated in front of the app; the forwarded scheme drives the Secure flag.
    uvicorn.run(create_app(), host=args.host, port=args.port, log_level="info", proxy_headers=True)


if __name__ == "__main__":
    main()
