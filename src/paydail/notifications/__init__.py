"""User-facing notifications."""

from paydail.notifications.deposits import DepositNotice, build_deposit_notice

__all__ = ["DepositNotice", "build_deposit_notice"]
