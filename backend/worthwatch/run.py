import os

import uvicorn
from dotenv import load_dotenv


def main() -> None:
    load_dotenv()
    port = int(os.getenv("PORT", "8000"))
    uvicorn.run("worthwatch.main:app", host="0.0.0.0", port=port)


if __name__ == "__main__":
    main()
