from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.sql import func
from shorturl_app.database.connection import Base


class UrlRecordRow(Base):
    """
    Durable row for one short URL mapping.

    Both keys are unique: the database itself rejects a second row for the
    same original URL or the same identifier, which is what makes
    insert-or-fetch safe under concurrent creates.
    """
    __tablename__ = "url_records"

    id = Column(Integer, primary_key=True, autoincrement=True)
    # Note: unique=True automatically creates an index in SQLAlchemy
    original_url = Column(String, unique=True, nullable=False)
    short_url = Column(Integer, unique=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
