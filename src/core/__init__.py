"""Core domain package for ephemera.

Core contains the retention rules, the expiry scheduler and the backfill
sweeper without any Telegram-specific code, keeping the enforcement logic
portable and testable with fake stores.
"""
