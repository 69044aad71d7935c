# backend/portfolio_aggregator/models.py
import enum
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import String, DateTime, ForeignKey, Enum, Numeric, UniqueConstraint, Index
from sqlalchemy.types import TypeDecorator
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ExactDecimal(TypeDecorator):
    """
    Numeric column that round-trips Decimal values without loss.

    SQLite has no decimal storage and would coerce NUMERIC to a float, so
    there the value is kept as its decimal text instead.
    """
    impl = Numeric
    cache_ok = True

    def __init__(self, precision: int = 36, scale: int = 16):
        super().__init__(precision=precision, scale=scale)
        self.precision = precision
        self.scale = scale

    def load_dialect_impl(self, dialect):
        if dialect.name == "sqlite":
            return dialect.type_descriptor(String(self.precision + 2))
        return dialect.type_descriptor(Numeric(self.precision, self.scale))

    def process_bind_param(self, value, dialect):
        if value is None or dialect.name != "sqlite":
            return value
        return str(Decimal(value))

    def process_result_value(self, value, dialect):
        if value is None or dialect.name != "sqlite":
            return value
        return Decimal(value)


def _enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    # Persist the lower-case values ("broker"), not the member names ("BROKER")
    return [member.value for member in enum_cls]


class PlatformName(str, enum.Enum):
    ZERODHA = "zerodha"
    GROWW = "groww"
    UPSTOX = "upstox"
    MANUAL = "manual"
    WAZIRX = "wazirx"
    BINANCE = "binance"


class PlatformType(str, enum.Enum):
    BROKER = "broker"
    EXCHANGE = "exchange"
    MANUAL = "manual"


class PlatformStatus(str, enum.Enum):
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    ERROR = "error"


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    hashed_password: Mapped[str] = mapped_column(String(255))
    name: Mapped[str] = mapped_column(String(100))
    phone: Mapped[str | None] = mapped_column(String(32), nullable=True)

    # SHA-256 of the only refresh token currently accepted for this user.
    # Overwritten on login/refresh, cleared on logout.
    refresh_token_hash: Mapped[str | None] = mapped_column(String(64), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    platforms: Mapped[list["Platform"]] = relationship(
        back_populates="owner",
        cascade="all, delete-orphan",
        order_by="Platform.id",
    )
    transactions: Mapped[list["Transaction"]] = relationship(
        back_populates="user",
        cascade="all, delete-orphan",
    )


class Platform(Base):
    """
    A connected external account (broker, exchange or manual ledger).

    A user can connect each platform at most once.
    """
    __tablename__ = "platforms"
    __table_args__ = (
        UniqueConstraint("user_id", "name", name="uq_platform_user_name"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    name: Mapped[PlatformName] = mapped_column(
        Enum(PlatformName, values_callable=_enum_values, native_enum=False, length=20)
    )
    type: Mapped[PlatformType] = mapped_column(
        Enum(PlatformType, values_callable=_enum_values, native_enum=False, length=20)
    )
    status: Mapped[PlatformStatus] = mapped_column(
        Enum(PlatformStatus, values_callable=_enum_values, native_enum=False, length=20),
        default=PlatformStatus.CONNECTED,
    )
    balance: Mapped[Decimal] = mapped_column(Numeric(18, 2), default=Decimal("0"))
    last_sync: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Opaque, provider-specific credentials
    api_key: Mapped[str | None] = mapped_column(String(255), nullable=True)
    api_secret: Mapped[str | None] = mapped_column(String(255), nullable=True)
    access_token: Mapped[str | None] = mapped_column(String(512), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    owner: Mapped["User"] = relationship(back_populates="platforms")
    investments: Mapped[list["Investment"]] = relationship(
        back_populates="platform",
        cascade="all, delete-orphan",
        order_by="Investment.id",
    )


class Investment(Base):
    """
    One holding within a platform.

    current_value always equals current_price * quantity once a valuation
    refresh has run. returns_percent stays NULL while invested_value is 0.
    """
    __tablename__ = "investments"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    platform_id: Mapped[int] = mapped_column(ForeignKey("platforms.id", ondelete="CASCADE"), index=True)

    symbol: Mapped[str] = mapped_column(String(32), index=True)
    name: Mapped[str] = mapped_column(String(255))
    # Free text, classified case-insensitively for allocation
    type: Mapped[str] = mapped_column(String(32))
    status: Mapped[str] = mapped_column(String(20), default="active")

    quantity: Mapped[Decimal] = mapped_column(ExactDecimal(18, 8))
    avg_price: Mapped[Decimal] = mapped_column(ExactDecimal(18, 8))
    invested_value: Mapped[Decimal] = mapped_column(ExactDecimal())
    current_price: Mapped[Decimal] = mapped_column(ExactDecimal(18, 8), default=Decimal("0"))
    current_value: Mapped[Decimal] = mapped_column(ExactDecimal(), default=Decimal("0"))
    returns: Mapped[Decimal] = mapped_column(ExactDecimal(), default=Decimal("0"))
    returns_percent: Mapped[Decimal | None] = mapped_column(Numeric(12, 4), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    platform: Mapped["Platform"] = relationship(back_populates="investments")


class Transaction(Base):
    """Append-only record of a buy, sell or other account action."""
    __tablename__ = "transactions"
    __table_args__ = (
        Index("ix_transactions_user_date", "user_id", "date"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"))
    type: Mapped[str] = mapped_column(String(20))
    symbol: Mapped[str] = mapped_column(String(32))
    quantity: Mapped[Decimal] = mapped_column(Numeric(18, 8))
    price: Mapped[Decimal] = mapped_column(Numeric(18, 8))
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 2))
    platform: Mapped[str] = mapped_column(String(20))
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    user: Mapped["User"] = relationship(back_populates="transactions")
