"""Run the bot with uvicorn: python -m hemis_bot."""

import os

import uvicorn


def main() -> None:
    uvicorn.run(
        "hemis_bot.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8080")),
        log_config=None,
    )


if __name__ == "__main__":
    main()
