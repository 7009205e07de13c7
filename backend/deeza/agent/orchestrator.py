"""
Gift Flow Orchestrator — the conversational state machine.

================================================================================
FLOW
================================================================================

IDLE ──register──▶ AWAITING_WALLET_ADDRESS ──addr (changed)──▶ AWAITING_WALLET_CHANGE_CONFIRM
IDLE ──send_gift──▶ AWAITING_PROOF ──▶ AWAITING_MESSAGE ──upload──▶ AWAITING_CONFIRM ──createGift──▶ IDLE
IDLE ──claim_gift──▶ AWAITING_ANSWER ──correct──▶ release ──fail──▶ AWAITING_RELEASE_RETRY
                                     └─wrong x3─▶ extendClaimTime, IDLE

RULES:
- Cancel words clear any context, from any state
- While a context is active the intent parser is NOT consulted
- The chain is authoritative for gift status; the context only carries the flow
- Every handler returns the list of replies; the transport sends them
================================================================================
"""
import asyncio
import logging
import random
import re
import weakref
from typing import Awaitable, Callable, List, Optional

from web3 import Web3

from ai.intent_parser import parse_message_with_ai
from ai.judge import AnswerJudge
from ai.phrasing import classify_confirmation, enhance_gift_message, proof_to_question
from deeza.agent import formatting
from deeza.agent.conversation_state import (
    ESCAPE_PATTERNS,
    FLOW_FAMILY,
    FlowFamily,
    FlowState,
    flow_name,
    is_cancel,
    is_skip,
    is_wallet_cancel,
    is_wallet_confirm,
    keyword_confirmation,
)
from deeza.core.config import settings
from deeza.core.exceptions import (
    AUTHORITATIVE_REJECTIONS,
    AlreadyClaimed,
    ContentStoreError,
    GatewayNotConfigured,
    GiftError,
    LockedOut,
)
from deeza.schemas.gift import ContentBlob, ZERO_ADDRESS
from deeza.services.context_store import ContextStore, ConversationContext
from deeza.services.gift_codes import derive_gift_id, format_base_units, generate_gift_code, parse_amount, to_base_units
from deeza.services.token_info import TESTNET_TOKEN_SYMBOL, is_native_symbol
from deeza.services.user_registry import UserProfile, UserRegistry, find_address, is_valid_address

logger = logging.getLogger(__name__)

Notifier = Callable[[str, str], Awaitable[bool]]

TERMINAL_RELEASE_ERRORS = AUTHORITATIVE_REJECTIONS + (GatewayNotConfigured,)


class GiftOrchestrator:
    """
    One instance per process. Collaborators are injected so tests can
    swap the chain, IPFS and LLM for fakes.
    """

    def __init__(
        self,
        contexts: ContextStore,
        registry: UserRegistry,
        gateway,
        content_store,
        tokens,
        gift_cache=None,
        intent_parser: Callable[[str, Optional[dict]], dict] = parse_message_with_ai,
        judge: Optional[AnswerJudge] = None,
        proof_converter: Callable[[str], tuple] = proof_to_question,
        confirm_classifier: Callable[[str], Optional[str]] = classify_confirmation,
        message_enhancer: Callable[[str], str] = enhance_gift_message,
        notifier: Optional[Notifier] = None,
        rng: Optional[random.Random] = None,
    ):
        self.contexts = contexts
        self.registry = registry
        self.gateway = gateway
        self.content_store = content_store
        self.tokens = tokens
        self.gift_cache = gift_cache
        self.intent_parser = intent_parser
        self.judge = judge or AnswerJudge()
        self.proof_converter = proof_converter
        self.confirm_classifier = confirm_classifier
        self.message_enhancer = message_enhancer
        self.notifier = notifier
        self.rng = rng or random.Random()
        # Entries vanish once no handler holds or waits on the lock
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

        self._state_handlers = {
            FlowState.AWAITING_WALLET_ADDRESS: self._on_wallet_address,
            FlowState.AWAITING_WALLET_CHANGE_CONFIRM: self._on_wallet_change_confirm,
            FlowState.AWAITING_PROOF: self._on_proof,
            FlowState.AWAITING_MESSAGE: self._on_message,
            FlowState.AWAITING_CONFIRM: self._on_confirm,
            FlowState.AWAITING_ANSWER: self._on_answer,
            FlowState.AWAITING_RELEASE_RETRY: self._on_release_retry,
        }

    # ==========================================================================
    # ENTRY POINTS
    # ==========================================================================

    async def handle_message(self, chat_id, text: str, display_name: Optional[str] = None) -> List[str]:
        """Process one inbound chat message. Messages of one chat never interleave."""
        chat_key = str(chat_id)
        async with self._chat_lock(chat_key):
            return await self._dispatch(chat_key, (text or "").strip(), display_name)

    async def handle_start(self, chat_id, display_name: Optional[str] = None) -> List[str]:
        """/start and /help: register the user, show help. Context is left untouched."""
        self.registry.get_or_create(chat_id, display_name)
        return [formatting.help_text()]

    async def handle_cancel(self, chat_id) -> List[str]:
        chat_key = str(chat_id)
        async with self._chat_lock(chat_key):
            return self._cancel(chat_key)

    def _chat_lock(self, chat_key: str) -> asyncio.Lock:
        lock = self._locks.get(chat_key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[chat_key] = lock
        return lock

    # ==========================================================================
    # DISPATCH
    # ==========================================================================

    async def _dispatch(self, chat_id: str, text: str, display_name: Optional[str]) -> List[str]:
        user = self.registry.get_or_create(chat_id, display_name)

        if is_cancel(text):
            return self._cancel(chat_id)

        ctx = self.contexts.get(chat_id)
        if ctx is None:
            return await self._on_idle(chat_id, text, user)

        # The claim-answer state is checked before anything else
        if ctx.flow_state == FlowState.AWAITING_ANSWER:
            return await self._on_answer(chat_id, text, ctx, user)

        handler = self._state_handlers.get(ctx.flow_state)
        if handler is None:
            logger.warning(f"[Flow] Unknown flow_state={ctx.flow_state} for chat_id={chat_id}, clearing")
            self.contexts.clear(chat_id)
            return await self._on_idle(chat_id, text, user)

        logger.info(f"[Flow] chat_id={chat_id} state={ctx.flow_state}")
        return await handler(chat_id, text, ctx, user)

    def _cancel(self, chat_id: str) -> List[str]:
        ctx = self.contexts.get(chat_id)
        if ctx is None:
            return ["Nothing to cancel - you're all clear! 😉"]
        self.contexts.clear(chat_id)
        logger.info(f"[Flow] Cancelled {ctx.flow_state} for chat_id={chat_id}")
        return [f"✅ Cancelled {flow_name(ctx.flow_state)}. All state reset! 😉\n\nWhat would you like to do now?"]

    def _save(self, chat_id: str, flow_state: str, data: dict) -> bool:
        ttl = settings.PENDING_ACTION_TTL_SECONDS if FLOW_FAMILY.get(flow_state) == FlowFamily.QUICK_ACTION else None
        return self.contexts.save(chat_id, flow_state, data, ttl_seconds=ttl)

    # ==========================================================================
    # IDLE
    # ==========================================================================

    async def _on_idle(self, chat_id: str, text: str, user: UserProfile) -> List[str]:
        text_lower = text.lower()

        if "balance" in text_lower:
            return await self._show_balance(user)

        if "zazz" in text_lower and ("address" in text_lower or "token" in text_lower) and settings.IS_TESTNET:
            if settings.ZAZZ_TOKEN_ADDRESS and settings.ZAZZ_TOKEN_ADDRESS != ZERO_ADDRESS:
                return [f"🎁 ZAZZ Token Address:\n{settings.ZAZZ_TOKEN_ADDRESS}"]

        intent = await asyncio.to_thread(self.intent_parser, text, None)
        action = intent.get("action", "chat")
        params = intent.get("params") or {}
        logger.info(f"[Flow] chat_id={chat_id} idle action={action}")

        if action == "register_wallet" or (action == "chat" and "register" in text_lower):
            return await self._start_registration(chat_id, text, params, user)
        if action == "send_gift":
            return await self._start_gift(chat_id, text, params, user)
        if action == "claim_gift":
            return await self._start_claim(chat_id, params, user)
        if action == "show_gifts":
            return await self._show_gifts(user, params.get("type", "all"))
        if action == "set_proof":
            return ["Start a gift first! Try: \"gift @friend 10 USDC\" 😉"]

        return [intent.get("message") or formatting.help_text()]

    # ==========================================================================
    # REGISTRATION
    # ==========================================================================

    async def _start_registration(self, chat_id: str, text: str, params: dict, user: UserProfile) -> List[str]:
        address = params.get("address") or find_address(text)
        if address and is_valid_address(address):
            return await self._register_address(chat_id, address, user)
        self._save(chat_id, FlowState.AWAITING_WALLET_ADDRESS, {})
        return ["Drop your Somnia wallet address (0x...) and I'll register it! 😉"]

    async def _on_wallet_address(self, chat_id: str, text: str, ctx: ConversationContext, user: UserProfile) -> List[str]:
        text_lower = text.lower()
        escaping = any(re.match(pattern, text_lower) for pattern in ESCAPE_PATTERNS.values())
        if escaping and "register" not in text_lower:
            self.contexts.clear(chat_id)
            return await self._on_idle(chat_id, text, user)

        address = find_address(text)
        if not address:
            return [
                "Please provide a valid wallet address (starts with 0x followed by 40 characters), "
                "or say 'cancel' to stop. 😉"
            ]
        return await self._register_address(chat_id, address, user)

    async def _register_address(self, chat_id: str, address: str, user: UserProfile) -> List[str]:
        new_wallet = Web3.to_checksum_address(address)
        old_wallet = user.wallet_address

        if old_wallet and old_wallet.lower() != new_wallet.lower():
            self._save(chat_id, FlowState.AWAITING_WALLET_CHANGE_CONFIRM, {
                "old_wallet": old_wallet,
                "new_wallet": new_wallet,
            })
            return [
                f"⚠️ You already have a wallet registered:\n{formatting.short_address(old_wallet)}\n\n"
                f"New address: {formatting.short_address(new_wallet)}\n\nDo you want to change it? (yes/no)"
            ]

        if old_wallet:
            self.contexts.clear(chat_id)
            return [f"✅ That wallet is already registered: {formatting.short_address(old_wallet)} 😉"]

        if not self.registry.set_wallet(chat_id, new_wallet):
            return ["⚠️ Error saving wallet address. Please try again."]
        self.contexts.clear(chat_id)

        replies = [f"✅ Wallet registered! {formatting.short_address(new_wallet)}"]
        if settings.IS_TESTNET and not user.bonus_granted:
            if await self.gateway.mint_registration_bonus(new_wallet):
                self.registry.mark_bonus_granted(chat_id)
                replies[0] += "\n\n🎁 You received 100,000 ZAZZ tokens to play with! (Testnet only)"
            else:
                replies[0] += "\n\n⚠️ Bonus failed to send (check bot config)"
        return replies

    async def _on_wallet_change_confirm(self, chat_id: str, text: str, ctx: ConversationContext, user: UserProfile) -> List[str]:
        new_wallet = ctx.flow_data.get("new_wallet")
        if is_wallet_cancel(text):
            self.contexts.clear(chat_id)
            return [f"👍 Kept your current wallet: {formatting.short_address(ctx.flow_data.get('old_wallet'))}"]
        if is_wallet_confirm(text):
            self.contexts.clear(chat_id)
            if not new_wallet or not self.registry.set_wallet(chat_id, new_wallet):
                return ["⚠️ Error saving wallet address. Please try again."]
            return [f"✅ Wallet updated! {formatting.short_address(new_wallet)}"]
        return ["Please confirm: say 'yes' to change or 'no' to cancel."]

    # ==========================================================================
    # GIFT CREATION
    # ==========================================================================

    async def _start_gift(self, chat_id: str, text: str, params: dict, user: UserProfile) -> List[str]:
        if not user.wallet_address:
            return [formatting.REGISTER_FIRST]

        recipient = params.get("recipient")
        if not recipient:
            return ["I need a recipient! Try: \"gift @john 10 USDC\" 😉"]

        recipient_user = self.registry.get_by_handle(recipient)
        recipient_wallet = recipient_user.wallet_address if recipient_user else None
        if not recipient_wallet:
            pasted = params.get("address") or find_address(text)
            if pasted and is_valid_address(pasted):
                recipient_wallet = Web3.to_checksum_address(pasted)
        if not recipient_wallet:
            return [
                f"⚠️ @{recipient} is not registered yet!\n\nThey need to register by saying \"register me\", "
                f"OR you can provide their wallet address: \"gift @{recipient} 5 USDC 0x...\""
            ]

        token = (params.get("token") or settings.DEFAULT_GIFT_TOKEN).upper()
        native = is_native_symbol(token)

        amount = parse_amount(params.get("amount"))
        usd = parse_amount(params.get("amount_usd"))
        if amount is None and usd is not None:
            if token == TESTNET_TOKEN_SYMBOL or (settings.IS_TESTNET and not native):
                amount = usd
            else:
                amount = await asyncio.to_thread(self.tokens.usd_to_tokens, token, usd)
                if amount is None:
                    return [f"Couldn't get price for {token}. Try again."]
        if amount is None:
            return ["I need an amount! Try: \"gift @john 10 USDC\" 😉"]

        token_address = await asyncio.to_thread(self.tokens.resolve_token_address, token)
        if token_address is None:
            return [f"Couldn't find token {token}. Make sure the symbol is correct."]

        try:
            units = to_base_units(amount)
        except ValueError as e:
            return [f"⚠️ {e}. Try a different amount."]

        if native:
            display_token = settings.NATIVE_TOKEN
        elif settings.IS_TESTNET:
            display_token = TESTNET_TOKEN_SYMBOL
        else:
            display_token = token

        draft = {
            "recipient": recipient,
            "recipient_wallet": recipient_wallet,
            "recipient_chat_id": recipient_user.chat_id if recipient_user else None,
            "amount": format_base_units(units),
            "amount_units": str(units),
            "token": display_token,
            "token_address": token_address,
        }
        if not self._save(chat_id, FlowState.AWAITING_PROOF, draft):
            return ["⚠️ Couldn't start the gift right now. Please try again."]
        return [f"What should @{recipient} prove? 🤔"]

    async def _on_proof(self, chat_id: str, text: str, ctx: ConversationContext, user: UserProfile) -> List[str]:
        if not text:
            return ["Please provide the proof they need to answer. 😉"]

        try:
            question, answer = await asyncio.to_thread(self.proof_converter, text)
        except Exception as e:
            logger.warning(f"[Flow] Proof conversion failed, using proof text: {e}")
            question, answer = text, text

        draft = dict(ctx.flow_data)
        code = generate_gift_code(draft["recipient"], rng=self.rng)
        draft.update({
            "proof": text,
            "question": question or text,
            "expected_answers": [answer or text],
            "code": code,
            "gift_id": derive_gift_id(code),
        })
        self._save(chat_id, FlowState.AWAITING_MESSAGE, draft)
        return [f"Got it! 🔐 Want to add a message for @{draft['recipient']}? Type it, or say 'skip'."]

    async def _on_message(self, chat_id: str, text: str, ctx: ConversationContext, user: UserProfile) -> List[str]:
        draft = dict(ctx.flow_data)
        draft["message"] = None if is_skip(text) else text

        blob = ContentBlob(
            question=draft["question"],
            expected_answers=draft["expected_answers"],
            message=draft["message"],
            gifter=user.display_name,
            recipient=draft["recipient"],
        )
        try:
            draft["content_link"] = await asyncio.to_thread(self.content_store.put, blob)
        except ContentStoreError as e:
            logger.error(f"[Flow] Blob upload failed for chat_id={chat_id}: {e}")
            self.contexts.clear(chat_id)
            return [f"⚠️ {ContentStoreError.user_message}"]

        self._save(chat_id, FlowState.AWAITING_CONFIRM, draft)
        return [formatting.gift_summary(draft)]

    async def _on_confirm(self, chat_id: str, text: str, ctx: ConversationContext, user: UserProfile) -> List[str]:
        verdict = None
        try:
            verdict = await asyncio.to_thread(self.confirm_classifier, text)
        except Exception as e:
            logger.warning(f"[Flow] Confirm classifier error: {e}")
        if verdict not in ("confirm", "cancel"):
            verdict = keyword_confirmation(text)

        if verdict == "cancel":
            self.contexts.clear(chat_id)
            return ["❌ Gift creation cancelled. No worries! 😉"]
        if verdict != "confirm":
            return ["I didn't catch that. Say 'yes' to create the gift or 'no' to cancel. 😉"]

        draft = ctx.flow_data
        if not draft.get("recipient_wallet"):
            self.contexts.clear(chat_id)
            return [f"⚠️ Recipient @{draft.get('recipient')} doesn't have a registered wallet!"]

        try:
            await self.gateway.create_gift(
                draft["gift_id"],
                draft["code"],
                draft["content_link"],
                draft["recipient_wallet"],
                draft.get("token_address") or ZERO_ADDRESS,
                int(draft["amount_units"]),
            )
        except GiftError as e:
            if e.retryable:
                logger.warning(f"[Flow] createGift transient failure for {draft['code']}, keeping draft: {e}")
                return [
                    "⚠️ RPC timeout - Somnia network is slow right now.\n\n"
                    "Your gift data is saved! Try again in a moment with: \"yes\""
                ]
            logger.error(f"[Flow] createGift failed for {draft['code']}: {e}")
            self.contexts.clear(chat_id)
            return [f"⚠️ {e.user_message}"]

        self.contexts.clear(chat_id)
        logger.info(f"[Flow] ✅ Gift {draft['code']} created by chat_id={chat_id}")
        if self.gift_cache is not None:
            self.gift_cache.record(chat_id, draft)

        notified = await self._notify(draft.get("recipient_chat_id"), formatting.recipient_notification(user.display_name, draft))
        return [formatting.gift_created_message(draft, notified)]

    async def _notify(self, chat_id: Optional[str], text: str) -> bool:
        if not chat_id or self.notifier is None:
            return False
        try:
            return bool(await self.notifier(chat_id, text))
        except Exception as e:
            logger.error(f"[Flow] Recipient notification failed for chat_id={chat_id}: {e}")
            return False

    # ==========================================================================
    # CLAIM
    # ==========================================================================

    async def _start_claim(self, chat_id: str, params: dict, user: UserProfile) -> List[str]:
        code = params.get("code")
        if not code:
            return ["I need a gift code! Try: \"claim john42\" 😉"]
        if not user.wallet_address:
            return [formatting.REGISTER_FIRST]

        gift_id = derive_gift_id(code)
        try:
            gift = await self.gateway.get_gift(gift_id)
            if not gift.exists:
                return ["🤔 Gift not found. Double-check that code - maybe a typo? 😉"]
            if gift.claimed:
                return [f"🎁 {AlreadyClaimed.user_message} 😅"]
            if not gift.deposited:
                return ["⏳ Gift not deposited yet. Wait for the gifter to deposit the funds first! 😉"]
            remaining = await self.gateway.remaining_lockout_seconds(gift)
        except GiftError as e:
            logger.warning(f"[Flow] Claim lookup failed for {code}: {e}")
            return [f"😕 Error fetching gift details. {e.user_message}"]

        if remaining > 0:
            return [formatting.lockout_message(remaining)]

        try:
            blob = await asyncio.to_thread(self.content_store.get, gift.content_link)
        except ContentStoreError as e:
            logger.error(f"[Flow] Blob fetch failed for {code}: {e}")
            return ["😕 Couldn't load the gift question right now. Try again in a moment! 😉"]

        if not blob.expected_answers:
            return ["⚠️ This gift has no answer set. Contact the gifter."]

        self._save(chat_id, FlowState.AWAITING_ANSWER, {
            "gift_id": gift_id,
            "code": code,
            "question": blob.question,
            "expected_answers": blob.expected_answers,
            "attempts": gift.wrong_attempts,
            "recipient_wallet": gift.recipient_address if gift.recipient_address != ZERO_ADDRESS else None,
            "token_address": gift.token_address,
            "amount": str(gift.amount),
        })
        return [formatting.claim_prompt(blob.question)]

    async def _on_answer(self, chat_id: str, text: str, ctx: ConversationContext, user: UserProfile) -> List[str]:
        claim = dict(ctx.flow_data)
        expected = claim.get("expected_answers") or []
        if not expected:
            self.contexts.clear(chat_id)
            return ["⚠️ Error: No expected answers found. Please try claiming again."]

        verdict = await asyncio.to_thread(self.judge.judge_any, text, expected)
        logger.info(f"[Flow] Claim {claim.get('code')} answer judged correct={verdict.correct} ({verdict.reason})")

        if verdict.correct:
            return await self._release_claim(chat_id, claim, user)

        attempts = int(claim.get("attempts") or 0) + 1
        if attempts >= settings.MAX_WRONG_ATTEMPTS:
            try:
                await self.gateway.extend_claim_time(claim["gift_id"], settings.LOCKOUT_MINUTES)
            except GiftError as e:
                logger.error(f"[Flow] extendClaimTime failed for {claim.get('code')}: {e}")
            self.contexts.clear(chat_id)
            return [
                f"😅 Oops! Wrong answer {settings.MAX_WRONG_ATTEMPTS} times. Locked for "
                f"{settings.LOCKOUT_MINUTES} minutes - give it another shot later! 😉"
            ]

        claim["attempts"] = attempts
        self._save(chat_id, FlowState.AWAITING_ANSWER, claim)
        return [formatting.wrong_answer_message(settings.MAX_WRONG_ATTEMPTS - attempts, rng=self.rng)]

    def _resolve_release_wallet(self, claim: dict, user: UserProfile) -> Optional[str]:
        wallet = claim.get("recipient_wallet")
        if not wallet and self.gift_cache is not None:
            wallet = self.gift_cache.recipient_wallet(claim.get("code", ""))
        return wallet or user.wallet_address

    async def _release_claim(self, chat_id: str, claim: dict, user: UserProfile) -> List[str]:
        wallet = self._resolve_release_wallet(claim, user)
        if not wallet:
            self.contexts.clear(chat_id)
            return ["⚠️ Error: Recipient wallet not found. Contact support."]
        if user.wallet_address and wallet.lower() != user.wallet_address.lower():
            self.contexts.clear(chat_id)
            return [
                f"⚠️ This gift is for a different wallet address. You're claiming from "
                f"{formatting.short_address(user.wallet_address)} but the gift is for {formatting.short_address(wallet)}"
            ]

        try:
            current = await self.gateway.get_gift(claim["gift_id"])
            if current.claimed:
                raise AlreadyClaimed("claimed before release")
            tx_hash = await self.gateway.release(claim["gift_id"])
        except TERMINAL_RELEASE_ERRORS as e:
            self.contexts.clear(chat_id)
            logger.info(f"[Flow] Release of {claim.get('code')} rejected: {type(e).__name__}")
            if isinstance(e, LockedOut):
                return ["🔒 Oops! You're still locked out from wrong answers. Wait a bit and try again later! 😉"]
            return [f"⚠️ {e.user_message}"]
        except GiftError as e:
            logger.warning(f"[Flow] Release of {claim.get('code')} failed, parking for retry: {e}")
            self._save(chat_id, FlowState.AWAITING_RELEASE_RETRY, {
                "gift_id": claim["gift_id"],
                "code": claim.get("code"),
                "recipient_wallet": wallet,
                "token_address": claim.get("token_address"),
                "amount": claim.get("amount"),
            })
            return [
                f"😕 Correct answer, but releasing the gift failed: {e.user_message}\n\n"
                "Say 'yes' to retry the release (no need to answer again), or 'no' to stop."
            ]

        self.contexts.clear(chat_id)
        logger.info(f"[Flow] ✅ Gift {claim.get('code')} released tx={tx_hash}")

        message = None
        try:
            blob = await asyncio.to_thread(self.content_store.get, current.content_link)
            if blob.message:
                message = (await asyncio.to_thread(self.message_enhancer, blob.message)) or blob.message
        except Exception as e:
            logger.warning(f"[Flow] Could not load gifter message for {claim.get('code')}: {e}")

        return [formatting.claim_success_message(current.amount, current.token_address, tx_hash, message)]

    async def _on_release_retry(self, chat_id: str, text: str, ctx: ConversationContext, user: UserProfile) -> List[str]:
        verdict = keyword_confirmation(text)
        if verdict == "cancel":
            self.contexts.clear(chat_id)
            return ["👍 Okay, stopped. You can claim again later with the same code."]
        if verdict != "confirm":
            return ["Say 'yes' to retry releasing your gift, or 'no' to stop."]
        return await self._release_claim(chat_id, dict(ctx.flow_data), user)

    # ==========================================================================
    # READS
    # ==========================================================================

    async def _show_gifts(self, user: UserProfile, gift_type: str) -> List[str]:
        if not user.wallet_address:
            return [formatting.REGISTER_FIRST]
        try:
            sent, received = await asyncio.gather(
                self.gateway.get_gifts_by_gifter(user.wallet_address),
                self.gateway.get_gifts_by_recipient(user.wallet_address),
            )
        except GiftError as e:
            logger.warning(f"[Flow] Show gifts failed: {e}")
            return ["😕 Error fetching gifts. The network might be slow - try again in a moment! 😉"]
        return [formatting.gifts_overview(sent, received, gift_type)]

    async def _show_balance(self, user: UserProfile) -> List[str]:
        if not user.wallet_address:
            return ["You need to register your wallet first! Say \"register me\" 😉"]
        try:
            balances = await self.gateway.get_wallet_balances(user.wallet_address)
        except GiftError as e:
            logger.warning(f"[Flow] Balance lookup failed: {e}")
            return ["😕 Couldn't fetch your balance. The network might be slow - try again in a moment! 😉"]
        return [formatting.balance_message(user.wallet_address, balances)]
