"""
Database schema and connection management.

Uses SQLite with SQLAlchemy for profiles, contracts and jobs. Every
transaction is opened with BEGIN IMMEDIATE so concurrent writers are
serialised by the database rather than by the process.
"""

from datetime import datetime
from decimal import Decimal
from pathlib import Path
from sqlalchemy import (
    create_engine,
    event,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    TypeDecorator,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, relationship, sessionmaker

Base = declarative_base()

ROLE_CLIENT = "client"
ROLE_CONTRACTOR = "contractor"

STATUS_NEW = "new"
STATUS_IN_PROGRESS = "in_progress"
STATUS_TERMINATED = "terminated"

CENT = Decimal("0.01")


class Money(TypeDecorator):
    """Decimal amount stored as a whole number of cents.

    SQLite has no exact decimal type, so balance arithmetic in SQL runs on
    integers.
    """

    impl = Integer
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
        cents = amount.scaleb(2)
        if cents != cents.to_integral_value():
            raise ValueError(f"amount has more than two decimal places: {value}")
        return int(cents)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return Decimal(int(value)).scaleb(-2)


MONEY = Money()


class Profile(Base):
    """Account holder: a client who pays or a contractor who gets paid."""

    __tablename__ = "profiles"
    __table_args__ = (
        CheckConstraint("balance >= 0", name="ck_profiles_balance_non_negative"),
        CheckConstraint("role IN ('client', 'contractor')", name="ck_profiles_role"),
    )

    id = Column(Integer, primary_key=True)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    profession = Column(String, nullable=False)
    role = Column(String, nullable=False)  # client, contractor
    balance = Column(MONEY, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)

    client_contracts = relationship(
        "Contract", foreign_keys="Contract.client_id", back_populates="client"
    )
    contractor_contracts = relationship(
        "Contract", foreign_keys="Contract.contractor_id", back_populates="contractor"
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class Contract(Base):
    """Agreement between one client and one contractor."""

    __tablename__ = "contracts"
    __table_args__ = (
        CheckConstraint(
            "status IN ('new', 'in_progress', 'terminated')", name="ck_contracts_status"
        ),
    )

    id = Column(Integer, primary_key=True)
    terms = Column(String, nullable=False, default="")
    status = Column(String, nullable=False, default=STATUS_NEW)
    client_id = Column(Integer, ForeignKey("profiles.id"), nullable=False)
    contractor_id = Column(Integer, ForeignKey("profiles.id"), nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)

    client = relationship("Profile", foreign_keys=[client_id], back_populates="client_contracts")
    contractor = relationship(
        "Profile", foreign_keys=[contractor_id], back_populates="contractor_contracts"
    )
    jobs = relationship("Job", back_populates="contract")


class Job(Base):
    """Billable unit of work under a contract."""

    __tablename__ = "jobs"
    __table_args__ = (CheckConstraint("price > 0", name="ck_jobs_price_positive"),)

    id = Column(Integer, primary_key=True)
    description = Column(String, nullable=False, default="")
    price = Column(MONEY, nullable=False)
    paid = Column(Boolean, nullable=False, default=False)
    payment_date = Column(DateTime, nullable=True)
    contract_id = Column(Integer, ForeignKey("contracts.id"), nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)

    contract = relationship("Contract", back_populates="jobs")


def create_db_engine(db_path: Path, timeout: float = 5.0) -> Engine:
    """
    Create an engine whose transactions take the write lock up front.

    Args:
        db_path: Path to SQLite database file
        timeout: Seconds to wait for a competing transaction's lock

    Returns:
        SQLAlchemy engine
    """
    engine = create_engine(
        f"sqlite:///{db_path}",
        connect_args={"timeout": timeout, "check_same_thread": False},
    )

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        # pysqlite would otherwise emit its own deferred BEGIN
        dbapi_connection.isolation_level = None
        dbapi_connection.execute("PRAGMA foreign_keys = ON")

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


def init_database(db_path: Path, timeout: float = 5.0) -> Engine:
    """
    Initialize database and create tables.

    Args:
        db_path: Path to SQLite database file
        timeout: Seconds to wait for a competing transaction's lock

    Returns:
        The engine used to create the schema
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)
    engine = create_db_engine(db_path, timeout=timeout)
    Base.metadata.create_all(engine)
    return engine


def get_session_factory(engine: Engine) -> sessionmaker:
    """Session factory bound to engine; objects stay readable after commit."""
    return sessionmaker(bind=engine, expire_on_commit=False)


def get_session(db_path: Path, timeout: float = 5.0):
    """
    Get database session.

    Args:
        db_path: Path to SQLite database file
        timeout: Seconds to wait for a competing transaction's lock

    Returns:
        SQLAlchemy session
    """
    engine = create_db_engine(db_path, timeout=timeout)
    Session = get_session_factory(engine)
    return Session()
