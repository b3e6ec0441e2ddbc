"""Private-chat booking wizard and cancellation flow.

Every step edits the wizard message in place; the step to run and the data
collected so far come from the pressed button's callback data, so nothing
is kept per user between updates.
"""

from __future__ import annotations
from tracking import t

import logging
import re
from datetime import date
from typing import Optional

import pytz
from telegram import Update
from telegram.constants import ChatType
from telegram.error import TelegramError
from telegram.ext import ContextTypes

from botapp.handlers.router import CallbackRouter
from botapp.i18n import Translator
from infrastructure.constants import EMAIL_KEY_PREFIX
from infrastructure.errors import CalendarBackendError, InvalidPayloadError, RaceConditionError
from infrastructure.state_store import KeyValueStore
from integrations.messaging import TelegramMessenger
from reservations.availability import AvailabilityService
from reservations.booking_coordinator import BookingCoordinator
from reservations.models import BookingUser

from . import keyboards, payload
from .payload import (
    Confirm,
    ConfirmCancel,
    Dismiss,
    SelectActivity,
    SelectDate,
    SelectEvent,
    SelectTime,
)

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _tag_prefix(tag: str) -> str:
    return payload.SEPARATOR.join([payload.PAYLOAD_VERSION, tag, ""])


def _tag_exact(tag: str) -> str:
    return payload.SEPARATOR.join([payload.PAYLOAD_VERSION, tag])


class ReservationWizard:
    """Telegram entry points for booking, cancelling and e-mail registration."""

    def __init__(
        self,
        availability: AvailabilityService,
        coordinator: BookingCoordinator,
        messenger: TelegramMessenger,
        store: KeyValueStore,
        translator: Translator,
        *,
        group_chat_id: Optional[int] = None,
        timezone: str = "Europe/Kyiv",
        logger: Optional[logging.Logger] = None,
    ) -> None:
        t('botapp.wizard.handler.ReservationWizard.__init__')
        self.availability = availability
        self.coordinator = coordinator
        self.messenger = messenger
        self.store = store
        self.translator = translator
        self.group_chat_id = group_chat_id
        self.timezone = pytz.timezone(timezone)
        self.logger = logger or logging.getLogger('ReservationWizard')

        self.router = CallbackRouter(self.handle_expired)
        self._register_routes()

    def _register_routes(self) -> None:
        t('botapp.wizard.handler.ReservationWizard._register_routes')
        self.router.add_exact(payload.LEGACY_DISMISS, self.handle_dismiss)
        self.router.add_exact(_tag_exact('X'), self.handle_dismiss)
        self.router.add_exact(_tag_exact('K'), self.handle_confirm_cancel)
        self.router.add_prefix(_tag_prefix('A'), self.handle_select_activity)
        self.router.add_prefix(_tag_prefix('D'), self.handle_select_date)
        self.router.add_prefix(_tag_prefix('T'), self.handle_toggle)
        self.router.add_prefix(_tag_prefix('E'), self.handle_toggle)
        self.router.add_prefix(_tag_prefix('C'), self.handle_confirm)

    # ------------------------------------------------------------------
    # Access
    # ------------------------------------------------------------------

    async def _authorize(self, update: Update) -> Optional[BookingUser]:
        """Return the booking identity, or ``None`` after telling the user why not."""
        t('botapp.wizard.handler.ReservationWizard._authorize')

        chat = update.effective_chat
        user = update.effective_user
        if chat is None or user is None or chat.type != ChatType.PRIVATE:
            return None

        if not user.username:
            await self._reply(update, self.translator.t('access.no_username'))
            return None

        if self.group_chat_id is not None:
            if not await self.messenger.is_member(self.group_chat_id, user.id):
                self.logger.info("Rejected %s: not a member of the group chat", user.username)
                await self._reply(update, self.translator.t('access.not_member'))
                return None

        email = self.store.get(f"{EMAIL_KEY_PREFIX}{user.username}")
        return BookingUser(username=user.username, email=email, chat_id=chat.id)

    async def _reply(self, update: Update, text: str, reply_markup=None) -> None:
        query = update.callback_query
        if query is not None:
            await self._answer(query, text)
            return
        if update.effective_message is not None:
            await update.effective_message.reply_text(text, reply_markup=reply_markup)

    async def _answer(self, query, text: Optional[str] = None) -> None:
        try:
            await query.answer(text)
        except TelegramError as exc:
            self.logger.warning("Failed to answer callback query: %s", exc)

    # ------------------------------------------------------------------
    # Commands and text
    # ------------------------------------------------------------------

    async def help_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """``/start`` and ``/help``."""
        t('botapp.wizard.handler.ReservationWizard.help_command')
        if update.effective_chat is None or update.effective_chat.type != ChatType.PRIVATE:
            return
        await update.effective_message.reply_text(self.translator.t('command.help_text'))

    async def book_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        t('botapp.wizard.handler.ReservationWizard.book_command')
        if await self._authorize(update) is None:
            return
        await update.effective_message.reply_text(
            self.translator.t('wizard.choose_activity'),
            reply_markup=keyboards.activity_keyboard(self.translator),
        )

    async def cancel_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """List the user's upcoming bookings as toggle buttons."""
        t('botapp.wizard.handler.ReservationWizard.cancel_command')
        user = await self._authorize(update)
        if user is None:
            return

        bookings = await self.coordinator.user_bookings(user.username)
        if not bookings:
            await update.effective_message.reply_text(self.translator.t('cancel.nothing'))
            return

        await update.effective_message.reply_text(
            self.translator.t('cancel.choose'),
            reply_markup=keyboards.cancel_keyboard(bookings, self.translator, self.timezone),
        )

    async def register_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        t('botapp.wizard.handler.ReservationWizard.register_command')
        if await self._authorize(update) is None:
            return
        await update.effective_message.reply_text(self.translator.t('register.prompt'))

    async def unknown_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        t('botapp.wizard.handler.ReservationWizard.unknown_command')
        if update.effective_chat is None or update.effective_chat.type != ChatType.PRIVATE:
            return
        await update.effective_message.reply_text(self.translator.t('command.unknown'))

    async def handle_text(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Treat a private message containing ``@`` as an e-mail registration."""
        t('botapp.wizard.handler.ReservationWizard.handle_text')
        message = update.effective_message
        if message is None or not message.text or '@' not in message.text:
            return
        user = await self._authorize(update)
        if user is None:
            return

        email = message.text.strip()
        if not EMAIL_PATTERN.match(email):
            await message.reply_text(self.translator.t('register.invalid', email=email))
            return

        self.store.set(f"{EMAIL_KEY_PREFIX}{user.username}", email)
        self.logger.info("Registered e-mail for %s", user.username)
        await message.reply_text(self.translator.t('register.saved', email=email))

    # ------------------------------------------------------------------
    # Callback queries
    # ------------------------------------------------------------------

    async def handle_callback(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Entry point for every wizard button press."""
        t('botapp.wizard.handler.ReservationWizard.handle_callback')
        query = update.callback_query
        if query is None:
            return
        self.logger.info(
            "Received callback %s from user %s",
            query.data,
            update.effective_user.id if update.effective_user else 'Unknown',
        )
        await self.router.dispatch(update, context)

    async def handle_expired(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        t('botapp.wizard.handler.ReservationWizard.handle_expired')
        query = update.callback_query
        if query is not None:
            self.logger.warning("Ignoring unrecognised callback data %r", query.data)
            await self._answer(query, self.translator.t('wizard.expired'))

    async def _decode(self, update: Update):
        query = update.callback_query
        try:
            return payload.decode(query.data or "")
        except InvalidPayloadError as exc:
            self.logger.warning("Invalid wizard payload %r: %s", query.data, exc)
            await self._answer(query, self.translator.t('wizard.expired'))
            return None

    async def handle_select_activity(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        t('botapp.wizard.handler.ReservationWizard.handle_select_activity')
        step = await self._decode(update)
        if not isinstance(step, SelectActivity):
            return
        query = update.callback_query
        await self._answer(query)

        view = await self.availability.load()
        days = view.days_with_availability()
        if not days:
            await query.edit_message_text(self.translator.t('wizard.no_dates'))
            return
        await query.edit_message_text(
            self.translator.t('wizard.choose_date'),
            reply_markup=keyboards.date_keyboard(step.activity, days, self.translator),
        )

    async def handle_select_date(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        t('botapp.wizard.handler.ReservationWizard.handle_select_date')
        step = await self._decode(update)
        if not isinstance(step, SelectDate):
            return
        query = update.callback_query

        view = await self.availability.load()
        slots = view.empty_slots(step.day)
        if not slots:
            await self._answer(query, self.translator.t('wizard.fully_booked', date=step.day.isoformat()))
            return
        await self._answer(query)
        self.logger.info("Booking date selected: %s", step.day)
        await query.edit_message_text(
            self.translator.t('wizard.choose_time', date=step.day.isoformat()),
            reply_markup=keyboards.time_keyboard(step.activity, step.day, slots, self.translator),
        )

    async def handle_toggle(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Flip the check mark on a time slot or booking button."""
        t('botapp.wizard.handler.ReservationWizard.handle_toggle')
        step = await self._decode(update)
        if not isinstance(step, (SelectTime, SelectEvent)):
            return
        query = update.callback_query
        await self._answer(query)
        markup = query.message.reply_markup
        if markup is None:
            return
        await query.edit_message_reply_markup(reply_markup=keyboards.toggle_check(markup, query.data))

    async def handle_confirm(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Book the checked slots of the time keyboard."""
        t('botapp.wizard.handler.ReservationWizard.handle_confirm')
        step = await self._decode(update)
        if not isinstance(step, Confirm):
            return
        query = update.callback_query
        user = await self._authorize(update)
        if user is None:
            return

        markup = query.message.reply_markup
        slots = keyboards.selected_slots(markup) if markup is not None else []
        view = await self.availability.load()
        if step.day not in view.days:
            self.logger.info("Confirm for %s outside the booking range (today %s)", step.day, view.today)
            await self._answer(query, self.translator.t('wizard.expired'))
            await query.edit_message_text(self.translator.t('wizard.expired'))
            return
        if not slots:
            if view.empty_slots(step.day):
                await self._answer(query, self.translator.t('wizard.nothing_selected'))
            else:
                await self._answer(query, self.translator.t('wizard.fully_booked', date=step.day.isoformat()))
            return
        if not all(view.is_free(step.day, slot) for slot in slots):
            self.logger.info("Selection of %s on %s is no longer free", user.username, step.day)
            await self._answer(query, self.translator.t('wizard.slots_gone'))
            await self._rerender_times(query, step.activity, step.day, view)
            return

        await self._answer(query)
        activity_name = self.translator.t(step.activity.translation_key)
        try:
            batch = await self.coordinator.book(user, step.activity, step.day, slots, summary=activity_name)
        except RaceConditionError as exc:
            self.logger.info("Race lost by %s on %s to event %s", user.username, step.day, exc.conflicting_event_id)
            await self._rerender_times(query, step.activity, step.day)
            await self.messenger.send_message(query.message.chat_id, self.translator.t('wizard.race_lost'))
            return
        except CalendarBackendError as exc:
            self.logger.error("Booking for %s on %s failed: %s", user.username, step.day, exc)
            await self.messenger.send_message(query.message.chat_id, self.translator.t('error.generic'))
            return

        slots_text = "\n".join(
            f"{event.start.astimezone(self.timezone):%H:%M} - {event.end.astimezone(self.timezone):%H:%M}"
            for event in batch.events
        )
        await self.messenger.send_message(
            query.message.chat_id,
            self.translator.t(
                'wizard.booked',
                date=step.day.isoformat(),
                activity=activity_name,
                slots=slots_text,
            ),
        )
        await self.messenger.delete_message(query.message.chat_id, query.message.message_id)

    async def _rerender_times(self, query, activity, day: date, view=None) -> None:
        if view is None:
            view = await self.availability.load()
        await query.edit_message_reply_markup(
            reply_markup=keyboards.time_keyboard(activity, day, view.empty_slots(day), self.translator)
        )

    async def handle_confirm_cancel(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Delete the checked bookings and announce it in the group chat."""
        t('botapp.wizard.handler.ReservationWizard.handle_confirm_cancel')
        step = await self._decode(update)
        if not isinstance(step, ConfirmCancel):
            return
        query = update.callback_query
        user = await self._authorize(update)
        if user is None:
            return

        markup = query.message.reply_markup
        selected = keyboards.selected_events(markup) if markup is not None else []
        if not selected:
            await self._answer(query, self.translator.t('wizard.nothing_selected'))
            return
        await self._answer(query)

        result = await self.coordinator.cancel(event_id for event_id, _ in selected)
        self.logger.info("User %s cancelled %s bookings", user.username, result.count)

        if self.group_chat_id is not None:
            labels = [label for event_id, label in selected if event_id in result.deleted]
            if labels:
                notice = self.translator.t('cancel.group_notice', items="\n".join(labels))
                await self.messenger.send_message(self.group_chat_id, f"{notice}\n@{user.username}")

        await self.messenger.send_message(
            query.message.chat_id, self.translator.t('cancel.done', count=result.count)
        )
        await self.messenger.delete_message(query.message.chat_id, query.message.message_id)

    async def handle_dismiss(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        t('botapp.wizard.handler.ReservationWizard.handle_dismiss')
        step = await self._decode(update)
        if not isinstance(step, Dismiss):
            return
        query = update.callback_query
        await self._answer(query)
        await self.messenger.delete_message(query.message.chat_id, query.message.message_id)


__all__ = ['EMAIL_PATTERN', 'ReservationWizard']
