"""SQLAlchemy models for the ledger."""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class DepositStatus(str, Enum):
    """Canonical status of a deposit."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    FAILED = "failed"


# Statuses that authorize a naira balance increase. "success" is never
# produced by the status normalizer but may exist on legacy rows.
CREDITABLE_STATUSES = frozenset({"confirmed", "completed", "success"})


def is_creditable(status: Optional[str]) -> bool:
    """Check if a stored or normalized status authorizes crediting."""
    return (status or "").strip().lower() in CREDITABLE_STATUSES


class Network(str, Enum):
    """Deposit network, one per stored address column."""

    TRC20 = "TRC20"
    BTC = "BTC"
    ETH = "ETH"
    BEP20 = "BEP20"


class User(Base):
    """User account with per-asset deposit addresses and a naira balance."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), unique=True, nullable=True)
    notify_transactions: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    naira_balance: Mapped[Decimal] = mapped_column(
        Numeric(36, 8), default=Decimal("0"), nullable=False
    )

    # Provisioned deposit addresses, checked in this order by owner lookup
    usdt_deposit_address_trc20: Mapped[Optional[str]] = mapped_column(
        String(255), unique=True, nullable=True
    )
    btc_deposit_address: Mapped[Optional[str]] = mapped_column(
        String(255), unique=True, nullable=True
    )
    eth_deposit_address: Mapped[Optional[str]] = mapped_column(
        String(255), unique=True, nullable=True
    )
    bnb_deposit_address_bep20: Mapped[Optional[str]] = mapped_column(
        String(255), unique=True, nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    deposits: Mapped[list["Deposit"]] = relationship(back_populates="user", lazy="raise")
    notifications: Mapped[list["Notification"]] = relationship(
        back_populates="user", lazy="raise"
    )

    def matched_network(self, address: str) -> Optional[Network]:
        """Return the network whose stored address equals ``address``."""
        if self.usdt_deposit_address_trc20 == address:
            return Network.TRC20
        if self.btc_deposit_address == address:
            return Network.BTC
        if self.eth_deposit_address == address:
            return Network.ETH
        if self.bnb_deposit_address_bep20 == address:
            return Network.BEP20
        return None


# (asset, network) -> users column holding that deposit address
ADDRESS_COLUMNS: dict[tuple[str, str], str] = {
    ("USDT", Network.TRC20.value): "usdt_deposit_address_trc20",
    ("BTC", Network.BTC.value): "btc_deposit_address",
    ("ETH", Network.ETH.value): "eth_deposit_address",
    ("BNB", Network.BEP20.value): "bnb_deposit_address_bep20",
}


class Deposit(Base):
    """One observed on-chain transfer matched to a user.

    At most one row exists per non-null ``transaction_hash``; later
    webhook deliveries for the same hash update the row in place.
    """

    __tablename__ = "deposits"
    __table_args__ = (Index("ix_deposits_user_created", "user_id", "created_at"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    reference: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str] = mapped_column(String(20), default="Deposit", nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(36, 18), nullable=False)
    naira_amount: Mapped[Decimal] = mapped_column(Numeric(36, 8), default=Decimal("0"))
    status: Mapped[str] = mapped_column(
        String(20), default=DepositStatus.PENDING.value, nullable=False
    )
    address: Mapped[str] = mapped_column(String(255), nullable=False)
    coin: Mapped[str] = mapped_column(String(20), nullable=False)
    network: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    transaction_hash: Mapped[Optional[str]] = mapped_column(
        String(255), unique=True, nullable=True, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    user: Mapped["User"] = relationship(back_populates="deposits")


class Notification(Base):
    """User-facing message. Append-only."""

    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    notification_type: Mapped[str] = mapped_column(String(50), nullable=False)
    read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    status: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    # Relationships
    user: Mapped["User"] = relationship(back_populates="notifications")


class AdminRate(Base):
    """Admin-configured naira-per-USD rate per asset.

    Only the oldest row is read; newer rows are kept as history.
    """

    __tablename__ = "admin_rates"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    usdt_rate: Mapped[Optional[Decimal]] = mapped_column(Numeric(20, 4), nullable=True)
    btc_rate: Mapped[Optional[Decimal]] = mapped_column(Numeric(20, 4), nullable=True)
    eth_rate: Mapped[Optional[Decimal]] = mapped_column(Numeric(20, 4), nullable=True)
    bnb_rate: Mapped[Optional[Decimal]] = mapped_column(Numeric(20, 4), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
