"""Create any missing chat tables. Safe to run on every deploy.

    python -m resume_chat.scripts.ensure_tables
"""

from resume_chat.database import ensure_tables_exist
from resume_chat.logging_config import setup_logging


def main():
    setup_logging()
    created = ensure_tables_exist() or []
    print(f"DB table check complete: {len(created)} table(s) created.")


if __name__ == "__main__":
    main()
