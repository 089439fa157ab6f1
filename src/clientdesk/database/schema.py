from sqlalchemy import (
    Column,
    Float,
    ForeignKey,
    Index,
    String,
    Text,
    create_engine,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class Client(Base):
    __tablename__ = "clients"

    client_id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=False)
    company = Column(String, nullable=False)
    city = Column(String, nullable=True, index=True)
    phone = Column(String, nullable=True)
    address = Column(Text, nullable=True)
    created_at_utc = Column(String, nullable=False)  # ISO 8601 string


class Project(Base):
    __tablename__ = "projects"

    project_id = Column(String, primary_key=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    client_id = Column(String, ForeignKey("clients.client_id"), nullable=False, index=True)
    status = Column(String, nullable=False, default="ACTIVE")  # ACTIVE | ON_HOLD | COMPLETED
    budget = Column(Float, nullable=True)
    created_at_utc = Column(String, nullable=False)  # ISO 8601 string

    __table_args__ = (
        Index("idx_projects_client_status", "client_id", "status"),
    )


def create_all(engine_url: str) -> None:
    engine = create_engine(engine_url)
    Base.metadata.create_all(engine)
