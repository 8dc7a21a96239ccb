"""
First-run table creation without alembic.

    DATABASE_URL=postgresql+psycopg2://... python -m jupiter.scripts.setup_db

Existing tables are left untouched; use alembic for schema changes.
"""

from jupiter.database import Base, write_engine
from jupiter.apps.inventory import models as inventory_models  # noqa: F401
from jupiter.apps.rejects import models as rejects_models  # noqa: F401


def main() -> None:
    print(f"Creating WMS tables on {write_engine.url.render_as_string(hide_password=True)}")
    Base.metadata.create_all(bind=write_engine)
    for table_name in sorted(Base.metadata.tables):
        print(f"  table {table_name} ready")
    print("Database setup complete. Start the API with: python -m jupiter.serve")


if __name__ == "__main__":
    main()
