"""Repository for ledger operations."""

from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from paydail.ledger.models import (
    ADDRESS_COLUMNS,
    AdminRate,
    Deposit,
    Notification,
    User,
)

# Fields a webhook delivery may write on a deposit row
DEPOSIT_FIELDS = (
    "user_id",
    "reference",
    "type",
    "amount",
    "naira_amount",
    "status",
    "created_at",
    "address",
    "coin",
    "network",
    "transaction_hash",
)


class LedgerRepository:
    """Repository for all ledger-related database operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    # User operations
    async def create_user(self, email: Optional[str] = None, **addresses: str) -> User:
        """Create a user, optionally with deposit addresses already set."""
        user = User(email=email, **addresses)
        self.session.add(user)
        await self.session.flush()
        return user

    async def get_user(self, user_id: int) -> Optional[User]:
        """Get user by ID."""
        stmt = select(User).where(User.id == user_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def find_user_by_address(self, address: str) -> Optional[User]:
        """Find the user owning ``address`` in any deposit address column.

        Raises:
            MultipleResultsFound: if the address is stored on more than one user
        """
        stmt = select(User).where(
            or_(
                User.usdt_deposit_address_trc20 == address,
                User.btc_deposit_address == address,
                User.eth_deposit_address == address,
                User.bnb_deposit_address_bep20 == address,
            )
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def set_deposit_address(
        self, user_id: int, asset: str, network: str, address: str
    ) -> User:
        """Store a provisioned deposit address on the user."""
        column = ADDRESS_COLUMNS.get((asset.upper(), network.upper()))
        if column is None:
            raise ValueError(f"Unsupported asset/network: {asset}/{network}")

        user = await self.get_user(user_id)
        if user is None:
            raise ValueError(f"User {user_id} not found")

        setattr(user, column, address)
        await self.session.flush()
        return user

    # Balance operations
    async def get_naira_balance(self, user_id: int) -> Decimal:
        """Read the current naira balance (0 for unknown users)."""
        stmt = select(User.naira_balance).where(User.id == user_id)
        result = await self.session.execute(stmt)
        balance = result.scalar_one_or_none()
        return Decimal(balance) if balance is not None else Decimal("0")

    async def credit_naira_balance(self, user_id: int, amount: Decimal) -> Decimal:
        """Add ``amount`` to the naira balance in one UPDATE and return the new balance.

        The increment is evaluated by the database, so concurrent credits
        for the same user cannot overwrite each other.
        """
        if amount <= 0:
            raise ValueError("Credit amount must be positive")

        stmt = (
            update(User)
            .where(User.id == user_id)
            .values(naira_balance=User.naira_balance + amount)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        if result.rowcount == 0:
            raise ValueError(f"User {user_id} not found")

        return await self.get_naira_balance(user_id)

    # Deposit operations
    async def get_deposit_by_tx_hash(self, tx_hash: Optional[str]) -> Optional[Deposit]:
        """Get deposit by transaction hash. A missing hash never matches."""
        if not tx_hash:
            return None
        stmt = select(Deposit).where(Deposit.transaction_hash == tx_hash).limit(1)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_deposit(self, deposit_id: int) -> Optional[Deposit]:
        """Get deposit by ID."""
        stmt = select(Deposit).where(Deposit.id == deposit_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_deposits(self, user_id: int) -> list[Deposit]:
        """List a user's deposits, newest first."""
        stmt = (
            select(Deposit)
            .where(Deposit.user_id == user_id)
            .order_by(Deposit.created_at.desc(), Deposit.id.desc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def create_deposit(self, **fields: Any) -> Deposit:
        """Insert a new deposit row."""
        deposit = Deposit(**self._deposit_values(fields))
        self.session.add(deposit)
        await self.session.flush()
        return deposit

    async def update_deposit(self, deposit: Deposit, **fields: Any) -> Deposit:
        """Overwrite all webhook-owned fields of an existing deposit."""
        for key, value in self._deposit_values(fields).items():
            setattr(deposit, key, value)
        await self.session.flush()
        return deposit

    @staticmethod
    def _deposit_values(fields: dict[str, Any]) -> dict[str, Any]:
        unknown = set(fields) - set(DEPOSIT_FIELDS)
        if unknown:
            raise ValueError(f"Unknown deposit fields: {', '.join(sorted(unknown))}")
        return fields

    # Notification operations
    async def create_notification(
        self,
        user_id: int,
        title: str,
        message: str,
        notification_type: str,
        status: Optional[str] = None,
    ) -> Notification:
        """Append an unread notification for a user."""
        notification = Notification(
            user_id=user_id,
            title=title,
            message=message,
            notification_type=notification_type,
            read=False,
            status=status,
        )
        self.session.add(notification)
        await self.session.flush()
        return notification

    async def list_notifications(self, user_id: int) -> list[Notification]:
        """List a user's notifications in insertion order."""
        stmt = (
            select(Notification)
            .where(Notification.user_id == user_id)
            .order_by(Notification.id.asc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    # Admin rate operations
    async def get_admin_rates(self) -> Optional[AdminRate]:
        """Get the oldest admin rate row."""
        stmt = (
            select(AdminRate)
            .order_by(AdminRate.created_at.asc(), AdminRate.id.asc())
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def add_admin_rates(
        self,
        usdt_rate: Optional[Decimal] = None,
        btc_rate: Optional[Decimal] = None,
        eth_rate: Optional[Decimal] = None,
        bnb_rate: Optional[Decimal] = None,
    ) -> AdminRate:
        """Insert an admin rate row."""
        row = AdminRate(
            usdt_rate=usdt_rate,
            btc_rate=btc_rate,
            eth_rate=eth_rate,
            bnb_rate=bnb_rate,
        )
        self.session.add(row)
        await self.session.flush()
        return row
