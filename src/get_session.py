"""Interactive login that creates the local Telethon session file."""

from __future__ import annotations

import logging
import os
from getpass import getpass

import qrcode
from telethon import TelegramClient, errors

from client import build_client

LOGGER = logging.getLogger(__name__)

QR_TIMEOUT_SECONDS = 120


def _print_qr(url: str) -> None:
    qr = qrcode.QRCode(border=1)
    qr.add_data(url)
    qr.make(fit=True)
    qr.print_ascii(invert=True)


def _resolve_2fa_password() -> str:
    return os.getenv("2FA") or getpass("2FA password: ")


async def _login_with_qr(client: TelegramClient) -> None:
    qr_login = await client.qr_login()
    _print_qr(qr_login.url)
    print(f"Scan the code in Telegram > Settings > Devices within {QR_TIMEOUT_SECONDS}s.")
    await qr_login.wait(timeout=QR_TIMEOUT_SECONDS)


async def _login_with_phone(client: TelegramClient) -> None:
    phone = os.getenv("PHONE") or input("Phone number (international format): ").strip()
    await client.send_code_request(phone)
    code = input("Login code: ").strip()
    await client.sign_in(phone=phone, code=code)


def _pick_login_method() -> str:
    method = (os.getenv("LOGIN_METHOD") or "").strip().lower()
    if method in {"qr", "phone"}:
        return method
    choices = {"1": "qr", "2": "phone"}
    while True:
        print("")
        print("[1] QR code")
        print("[2] Phone code")
        print("[3] Exit")
        choice = input("ephemera login > ").strip()
        if choice in choices:
            return choices[choice]
        if choice == "3":
            raise SystemExit(0)
        print("Invalid option. Please choose 1, 2, or 3.")


async def authorize(client: TelegramClient) -> None:
    """Log the connected client in unless its session is already authorized."""

    if await client.is_user_authorized():
        return

    login = _login_with_phone if _pick_login_method() == "phone" else _login_with_qr
    try:
        await login(client)
    except errors.SessionPasswordNeededError:
        await client.sign_in(password=_resolve_2fa_password())


async def login() -> None:
    """Create or refresh the session, then report which account it belongs to."""

    client = build_client()
    await client.connect()
    try:
        await authorize(client)
        me = await client.get_me()
        LOGGER.info("Logged in as %s (id %s)", me.first_name, me.id)
        print(f"Session ready for {me.first_name}.")
    finally:
        await client.disconnect()
