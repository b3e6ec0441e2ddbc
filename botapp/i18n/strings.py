"""Translation strings for all user-facing messages.

Keys use dot notation grouped by area (e.g. ``wizard.choose_date``).
"""

from typing import Dict

# Translation dictionary: language code -> key -> translated string
STRINGS: Dict[str, Dict[str, str]] = {
    "uk": {
        # Activities
        "activity.football": "Футбол",
        "activity.basketball": "Баскетбол",
        "activity.tennis": "Теніс",
        "activity.volleyball": "Волейбол",
        "activity.badminton": "Бадмінтон",
        "activity.other": "Інше",

        # Weekdays, Monday first
        "weekday.0": "Понеділок",
        "weekday.1": "Вівторок",
        "weekday.2": "Середа",
        "weekday.3": "Четвер",
        "weekday.4": "П'ятниця",
        "weekday.5": "Субота",
        "weekday.6": "Неділя",

        # Commands
        "command.register": "Зареєструватися",
        "command.book": "Забронювати",
        "command.cancel": "Скасувати бронь",
        "command.help": "Допомога",
        "command.help_text": (
            "Довідка: використовуйте /book для бронювання, /cancel для скасування.\n"
            "Для реєстрації/оновлення емейла використовуйте /register."
        ),
        "command.unknown": "Невідома команда. Спробуйте /help.",

        # Registration
        "register.prompt": "Будь ласка, надішліть ваш емейл для реєстрації приєднання до календаря.",
        "register.saved": "Ваш емейл {email} успішно зареєстровано. Дякуємо!",
        "register.invalid": "Не вірно введений емейл {email}",

        # Booking wizard
        "wizard.choose_activity": "Оберіть активність:",
        "wizard.choose_date": "Оберіть дату для бронювання:",
        "wizard.no_dates": "Нажаль, найближчими днями вільних слотів немає.",
        "wizard.choose_time": "Ви обрали дату: {date}. Будь ласка, оберіть час.",
        "wizard.confirm": "Підтвердити",
        "wizard.dismiss": "Скасувати",
        "wizard.booked": "Ви забронювали на {date} під {activity}:\n{slots}\nДякуємо за бронювання!",
        "wizard.nothing_selected": "Час не обрано",
        "wizard.fully_booked": "Нажаль вже все заброньовано {date}",
        "wizard.race_lost": "Нажаль, вже хтось забронював цей час швидше. Спробуйте ще",
        "wizard.slots_gone": "Частина обраного часу вже недоступна. Оберіть ще раз.",
        "wizard.expired": "Це меню застаріло. Почніть знову з /book.",

        # Cancellation
        "cancel.choose": "Будь ласка, оберіть слоти які ви хочете скасувати:",
        "cancel.nothing": "Нема чого скасовувати",
        "cancel.confirm": "Підтвердити скасування",
        "cancel.not_now": "Не зараз",
        "cancel.done": "Скасовано бронювань: {count}",
        "cancel.group_notice": "Скасовано бронювання:\n{items}",

        # Access
        "access.no_username": (
            "Щоб забронювати майданчик, треба створити ім'я користувача\n"
            "https://www.youtube.com/watch?v=Q-iZWJ7IwZs"
        ),
        "access.not_member": "Вас нема в чаті спортмайданчику або вас забанили",

        # Errors
        "error.generic": "Сталася помилка, вибачте за незручності",
        "error.admin_notice": "Помилка: {error}",

        # Polls
        "poll.confirmed": "✅ {votes} людей проголосувало за. Бронювання для {activity} ({when}) залишається в силі 💪",
        "poll.cancelled": "❌ Лише {votes} проголосувало за. Бронювання для {activity} скасовано, слоти після {when} вільні.",
        "poll.cleared": "ℹ️ Дані по голосуваннях в боті скинуто: видалено записів: {count}.",
    },
    "en": {
        # Activities
        "activity.football": "Football",
        "activity.basketball": "Basketball",
        "activity.tennis": "Tennis",
        "activity.volleyball": "Volleyball",
        "activity.badminton": "Badminton",
        "activity.other": "Other",

        # Weekdays, Monday first
        "weekday.0": "Monday",
        "weekday.1": "Tuesday",
        "weekday.2": "Wednesday",
        "weekday.3": "Thursday",
        "weekday.4": "Friday",
        "weekday.5": "Saturday",
        "weekday.6": "Sunday",

        # Commands
        "command.register": "Register",
        "command.book": "Book",
        "command.cancel": "Cancel a booking",
        "command.help": "Help",
        "command.help_text": (
            "Use /book to book the court and /cancel to cancel a booking.\n"
            "Use /register to register or update your e-mail."
        ),
        "command.unknown": "Unknown command. Try /help.",

        # Registration
        "register.prompt": "Please send the e-mail you want calendar invitations sent to.",
        "register.saved": "Your e-mail {email} has been registered. Thank you!",
        "register.invalid": "Invalid e-mail {email}",

        # Booking wizard
        "wizard.choose_activity": "Choose an activity:",
        "wizard.choose_date": "Choose a date:",
        "wizard.no_dates": "Unfortunately there are no free slots in the coming days.",
        "wizard.choose_time": "You chose {date}. Please pick the time.",
        "wizard.confirm": "Confirm",
        "wizard.dismiss": "Cancel",
        "wizard.booked": "You booked {date} for {activity}:\n{slots}\nThank you!",
        "wizard.nothing_selected": "No time selected",
        "wizard.fully_booked": "Everything is already booked on {date}",
        "wizard.race_lost": "Someone booked this time a moment earlier. Please try again",
        "wizard.slots_gone": "Some of the selected times are no longer available. Please choose again.",
        "wizard.expired": "This menu is outdated. Start again with /book.",

        # Cancellation
        "cancel.choose": "Please choose the bookings you want to cancel:",
        "cancel.nothing": "Nothing to cancel",
        "cancel.confirm": "Confirm cancellation",
        "cancel.not_now": "Not now",
        "cancel.done": "Bookings cancelled: {count}",
        "cancel.group_notice": "Bookings cancelled:\n{items}",

        # Access
        "access.no_username": "You need a Telegram username to book the court.",
        "access.not_member": "You are not a member of the court group chat.",

        # Errors
        "error.generic": "Something went wrong, sorry for the inconvenience",
        "error.admin_notice": "Error: {error}",

        # Polls
        "poll.confirmed": "✅ {votes} people voted for. The {activity} booking ({when}) stands 💪",
        "poll.cancelled": "❌ Only {votes} voted for. The {activity} booking is cancelled, slots after {when} are free.",
        "poll.cleared": "ℹ️ Poll data reset: {count} records removed.",
    },
}
