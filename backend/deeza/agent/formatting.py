"""User-facing message text for the gift flow."""
import math
import random
from decimal import Decimal
from typing import Dict, List, Optional

from deeza.core.config import settings
from deeza.schemas.gift import GiftRecord, ZERO_ADDRESS
from deeza.services.gift_codes import format_base_units

REGISTER_FIRST = 'You need to register your wallet first!\n\nSay "register me" and provide your wallet address. 😉'


def short_address(address: Optional[str]) -> str:
    if not address:
        return "?"
    return f"{address[:10]}...{address[38:]}"


def token_display_name(token_address: Optional[str]) -> str:
    """Symbol to show for an on-chain token address."""
    if not token_address or token_address == ZERO_ADDRESS:
        return settings.NATIVE_TOKEN
    return "ZAZZ" if settings.IS_TESTNET else "TOKEN"


def explorer_tx_url(tx_hash: str) -> str:
    return f"{settings.EXPLORER_URL}/tx/{tx_hash}"


def deposit_url() -> str:
    return f"{settings.WALLET_CONNECT_URL.rstrip('/')}/deposit"


def help_text() -> str:
    if settings.IS_TESTNET:
        network = (
            f"🌐 Network: Somnia Testnet\n💎 Native token: {settings.NATIVE_TOKEN}\n"
            "🎁 New wallets get 100,000 ZAZZ to play with!"
        )
    else:
        network = f"🌐 Network: Somnia Mainnet\n💎 Native token: {settings.NATIVE_TOKEN}"
    return (
        "Hey there! I'm Deeza, your crypto bro for peer-to-peer gifts on Somnia. 😎\n\n"
        f"{network}\n\n"
        "📝 How it works:\n"
        "1. Register: \"register me\" and paste your wallet address\n"
        "2. Gift crypto: \"gift @john 10 USDC\" or \"gift $20 worth of NIA to @mike\"\n"
        "3. Set proof: tell me what they should prove (e.g. \"his dog's name is Luna\")\n"
        "4. They claim: \"claim <code>\" and answer your question\n"
        "5. I judge the answer and release the funds!\n\n"
        "⚙️ Commands:\n"
        "• /help or /start - Show this message\n"
        "• /cancel - Reset any active process (or just say \"cancel\")\n"
        "• \"show my gifts\", \"balance\""
    )


def lockout_minutes(remaining_seconds: int) -> int:
    return max(1, math.ceil(remaining_seconds / 60))


def lockout_message(remaining_seconds: int) -> str:
    minutes = lockout_minutes(remaining_seconds)
    plural = "s" if minutes != 1 else ""
    return f"🔒 You're locked out from wrong answers! Wait {minutes} more minute{plural} before trying again. 😉"


_ENCOURAGEMENTS = [
    "😏 Nice try! But nope, that's not quite right. {left} more attempt{s} left - you got this! 💪",
    "🤔 Hmm, not quite right! {left} more attempt{s} remaining. Think harder! 🧠",
    "😄 Almost there but not quite! {left} more attempt{s} left. Keep going! 🚀",
]


def wrong_answer_message(attempts_left: int, rng: Optional[random.Random] = None) -> str:
    template = (rng or random).choice(_ENCOURAGEMENTS)
    return template.format(left=attempts_left, s="s" if attempts_left != 1 else "")


def gift_summary(draft: Dict) -> str:
    lines = [
        "🎁 Gift Summary",
        "",
        f"👤 Recipient: @{draft['recipient']} ({short_address(draft.get('recipient_wallet'))})",
        f"💰 Amount: {draft['amount']} {draft['token']}",
        f"🔐 Code: {draft['code']}",
        f"❓ Question: {draft['question']}",
    ]
    if draft.get("message"):
        lines.append(f"💬 Message: \"{draft['message']}\"")
    lines += ["", "Say 'yes' to create the gift or 'no' to cancel. 😉"]
    return "\n".join(lines)


def gift_created_message(draft: Dict, recipient_notified: bool) -> str:
    token_line = (
        f"NATIVE token ({settings.NATIVE_TOKEN})"
        if draft.get("token_address") in (None, "", ZERO_ADDRESS)
        else draft["token_address"]
    )
    notice = (
        "✉️ Recipient has been notified!"
        if recipient_notified
        else "⚠️ Recipient is not on Deeza yet - share the code with them!"
    )
    return (
        "✅ Gift Created Successfully!\n\n"
        f"📦 Deposit your {draft['token']} here:\n{deposit_url()}\n\n"
        f"🎁 Gift Code: {draft['code']}\n"
        f"💰 Amount: {draft['amount']} {draft['token']}\n"
        f"👤 Recipient: @{draft['recipient']}\n"
        f"📍 Token: {token_line}\n\n"
        f"{notice}\n\n"
        "Next Step: paste your code on the deposit page to send the funds!"
    )


def recipient_notification(gifter: Optional[str], draft: Dict) -> str:
    sender = f"@{gifter}" if gifter else "a friend"
    return (
        f"🎁 You received a gift from {sender}!\n\n"
        f"💰 Amount: {draft['amount']} {draft['token']}\n"
        f"🔐 Code: {draft['code']}\n\n"
        f"To claim it, say: \"claim {draft['code']}\" 😉"
    )


def claim_prompt(question: str) -> str:
    return f"Alright mate! 😉 To claim this gift, you'll need to answer a question. Here we go:\n\n{question}"


def claim_success_message(amount_units: int, token_address: str, tx_hash: str, message: Optional[str]) -> str:
    text = (
        "🎉 BOOM! Correct answer! Gift claimed successfully! 🚀\n\n"
        f"💰 You received: {format_base_units(amount_units)} {token_display_name(token_address)}\n\n"
        f"🔗 View transaction: {explorer_tx_url(tx_hash)}"
    )
    if message:
        text += f"\n\n💬 Message from the gifter:\n\"{message}\""
    return text


def _gift_line(index: int, gift: GiftRecord, with_status: bool = True) -> str:
    line = f"{index}. Code: {gift.code} - {format_base_units(gift.amount)} {token_display_name(gift.token_address)}"
    if with_status:
        status = "✅ Claimed" if gift.claimed else ("⏳ Pending" if gift.deposited else "❌ Not Deposited")
        line += f" - {status}"
    return line


def gifts_overview(sent: List[GiftRecord], received: List[GiftRecord], gift_type: str) -> str:
    parts: List[str] = []

    if gift_type in ("sent", "all"):
        if not sent:
            parts.append("📤 Gifts Sent: None yet 😔")
        else:
            lines = [f"📤 Gifts Sent: {len(sent)}"]
            lines += [_gift_line(i, g) for i, g in enumerate(sent, 1)]
            parts.append("\n".join(lines))

    if gift_type in ("pending", "active"):
        pending = [g for g in received if g.deposited and not g.claimed]
        if not pending:
            parts.append("⏳ Pending Gifts: None 😔")
        else:
            lines = [f"⏳ Pending Gifts: {len(pending)}"]
            for i, g in enumerate(pending, 1):
                lines.append(_gift_line(i, g, with_status=False))
                lines.append(f"   Say \"claim {g.code}\" to claim it! 😉")
            parts.append("\n".join(lines))

    if gift_type in ("received", "all"):
        if not received:
            parts.append("📥 Gifts Received: None yet 😔")
        else:
            claimed = sum(1 for g in received if g.claimed)
            lines = [f"📥 Gifts Received: {len(received)} ({claimed} claimed)"]
            lines += [_gift_line(i, g) for i, g in enumerate(received[:10], 1)]
            if len(received) > 10:
                lines.append(f"... and {len(received) - 10} more")
            parts.append("\n".join(lines))

    if not parts:
        return "No gifts found matching your query. Try sending or receiving some gifts! 😉"
    return "\n\n".join(parts)


def balance_message(address: str, balances: Dict) -> str:
    native: Decimal = balances["native"]
    lines = ["💰 Your Wallet Balance", "", f"💎 {settings.NATIVE_TOKEN}: {native:.6f} {settings.NATIVE_TOKEN}"]
    if balances.get("token") is not None:
        lines.append(f"🎁 ZAZZ: {balances['token']:.2f} ZAZZ")
    lines += ["", f"📍 Address: {short_address(address)}"]
    return "\n".join(lines)
