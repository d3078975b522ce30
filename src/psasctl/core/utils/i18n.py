"""UI language catalogs.

Rendering code never consults a global language. A ``UiText`` value is
created once by the caller and carried by the ``PromptHandler`` into every
menu, prompt and picker, so two consoles in one process can speak different
languages.

Example:
    text = UiText(load_language())
    console.print(text("Showing: {} / {} users", 3, 10))
"""

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from loguru import logger

LANG_US: Final = "us"
LANG_RU: Final = "ru"
DEFAULT_LANG: Final = LANG_US
SUPPORTED_LANGS: Final = (LANG_US, LANG_RU)

CATALOG_RU: Final = {
    "Language": "Язык",
    "Language set to: {}": "Язык установлен: {}",
    "Current language: {}": "Текущий язык: {}",
    "Supported: us, ru": "Поддерживается: us, ru",
    "PSASCTL - Interactive Menu": "PSASCTL - Интерактивное меню",
    "Controls: Up/Down or j/k to navigate, Enter to select, q to quit": (
        "Управление: Up/Down или j/k, Enter выбрать, q выйти"
    ),
    "Quick select: Type number and press Enter, or use shortcut key": (
        "Быстрый выбор: введите номер и нажмите Enter, или используйте горячую клавишу"
    ),
    "Controls: Up/Down or j/k, Enter to select, q to cancel": (
        "Управление: Up/Down или j/k, Enter выбрать, q отмена"
    ),
    "Controls: Up/Down to navigate, Enter to select, Type to filter": (
        "Управление: Up/Down навигация, Enter выбрать, ввод текста для фильтра"
    ),
    "          Backspace to erase, i for manual input, q to cancel": (
        "          Backspace стереть, i ручной ввод, q отмена"
    ),
    "Selected number": "Выбранный номер",
    "Filter: {}": "Фильтр: {}",
    "Showing: {} / {} users": "Показано: {} / {} пользователей",
    "(showing {}-{} of {})": "(показано {}-{} из {})",
    "No users match current filter": "Нет пользователей по текущему фильтру",
    "Enter option number (1-{}) or q": "Введите номер (1-{}) или q",
    "Enter user number (0-{}) or q": "Введите номер пользователя (0-{}) или q",
    "Invalid. Enter 1-{} or q": "Неверно. Введите 1-{} или q",
    "Invalid. Enter 0-{} or q": "Неверно. Введите 0-{} или q",
    "  0. Manual USER_ID input": "  0. Ручной ввод USER_ID",
    "  q. Cancel": "  q. Отмена",
    "  q. Exit": "  q. Выход",
    "Value is required.": "Значение обязательно.",
    "Press Enter to return to menu (q to exit)...": (
        "Нажмите Enter для возврата в меню (q для выхода)..."
    ),
    "Canceled.": "Отменено.",
    "ERROR": "ОШИБКА",
    "Exit": "Выход",
    "Back": "Назад",
    "Yes": "Да",
    "No": "Нет",
    "Status": "Статус",
    "List users": "Список пользователей",
    "Find users": "Поиск пользователей",
    "Show user + links": "Пользователь + ссылки",
    "Show user": "Показать пользователя",
    "Add user": "Добавить пользователя",
    "Change password": "Сменить пароль",
    "Delete user": "Удалить пользователя",
    "Restart service": "Перезапустить сервис",
    "Hiddify Manager": "Hiddify Manager",
    "Proxy Services": "Proxy сервисы",
    "Preferences": "Настройки",
    "Session": "Сессия",
    "SOCKS5 (Dante)": "SOCKS5 (Dante)",
    "TrustTunnel": "TrustTunnel",
    "Main domain, admin URL, users count": "Основной домен, админ URL, количество пользователей",
    "Print all users in a table": "Показать всех пользователей в таблице",
    "Search users by name/part and optional enabled filter": (
        "Поиск пользователей по имени/части и фильтру enabled"
    ),
    "Pick a user with arrows and print links": "Выберите пользователя стрелками и покажите ссылки",
    "Manage SOCKS users and danted service": "Управление SOCKS пользователями и сервисом danted",
    "Manage TrustTunnel users and service": "Управление пользователями и сервисом TrustTunnel",
    "Language and UI preferences": "Язык и настройки интерфейса",
    "Leave interactive mode": "Выйти из интерактивного режима",
    "Return to main menu": "Вернуться в главное меню",
    "Select user": "Выберите пользователя",
    "Select user to delete": "Выберите пользователя для удаления",
    "Select user to update": "Выберите пользователя для изменения",
    "USER_ID (uuid or name)": "USER_ID (uuid или имя)",
    "USER_ID (name)": "USER_ID (имя)",
    "Name filter (empty for all)": "Фильтр по имени (пусто для всех)",
    "Only enabled users?": "Только включенные?",
    "Username": "Имя пользователя",
    "Password (empty to generate)": "Пароль (пусто для генерации)",
    "Delete {}?": "Удалить {}?",
    "Restart {} now?": "Перезапустить {} сейчас?",
    "Select language": "Выберите язык",
    "Copy connection URI to clipboard?": "Скопировать URI подключения в буфер обмена?",
    "Connection info": "Данные подключения",
    "Telegram MTProxy": "Telegram MTProxy",
    "Manage Telegram MTProxy service and secret": "Управление сервисом и секретом Telegram MTProxy",
    "Show MTProxy service/config summary": "Показать статус MTProxy сервиса и конфига",
    "Show config": "Показать конфиг",
    "Print server/port/secret and connect links": "Показать сервер/порт/секрет и ссылки подключения",
    "Set secret": "Задать секрет",
    "Set custom HEX32 secret and restart service": "Задать свой HEX32 секрет и перезапустить сервис",
    "Regenerate secret": "Сгенерировать секрет",
    "Generate random HEX32 secret and restart service": "Сгенерировать случайный HEX32 секрет и перезапустить сервис",
    "Service control": "Управление сервисом",
    "Return to MTProxy menu": "Вернуться в меню MTProxy",
    "MTProxy service": "Сервис MTProxy",
    "Show systemctl status": "Показать systemctl status",
    "Start service": "Запустить сервис",
    "Stop service": "Остановить сервис",
    "MTProxy secret (HEX32)": "Секрет MTProxy (HEX32)",
    "Server host/ip (empty = from config)": "Сервер host/ip (пусто = из конфига)",
    "Port (empty = from config)": "Порт (пусто = из конфига)",
    "MTProxy secret updated.": "Секрет MTProxy обновлен.",
    "MTProxy secret regenerated.": "Секрет MTProxy сгенерирован заново.",
    "Generate a new secret? Current clients will disconnect.": (
        "Сгенерировать новый секрет? Текущие клиенты отключатся."
    ),
}

CATALOGS: Final = {LANG_US: {}, LANG_RU: CATALOG_RU}


def normalize_lang(raw: str | None) -> str:
    """Return a supported language code, or an empty string."""
    lang = (raw or "").strip().lower()
    return lang if lang in SUPPORTED_LANGS else ""


@dataclass(frozen=True)
class UiText:
    """Translator for one UI language.

    Calling the instance translates a message and, when arguments are given,
    formats it with ``str.format``. Unknown messages pass through unchanged.
    """

    lang: str = DEFAULT_LANG

    def __call__(self, message: str, *args: object) -> str:
        translated = CATALOGS.get(self.lang, {}).get(message, message)
        return translated.format(*args) if args else translated


def settings_path() -> Path:
    """Location of the persisted UI preferences."""
    override = os.environ.get("PSAS_UI_LANG_FILE", "").strip()
    if override:
        return Path(override)
    return Path.home() / ".config" / "psasctl" / "ui.json"


def load_language() -> str:
    """Resolve the UI language from ``PSAS_UI_LANG`` or the settings file."""
    env_lang = normalize_lang(os.environ.get("PSAS_UI_LANG"))
    if env_lang:
        return env_lang

    path = settings_path()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return DEFAULT_LANG
    except (OSError, ValueError) as e:
        logger.warning(f"Ignoring unreadable UI settings {path}: {e}")
        return DEFAULT_LANG

    if not isinstance(data, dict):
        return DEFAULT_LANG
    return normalize_lang(data.get("lang")) or DEFAULT_LANG


def save_language(lang: str) -> Path:
    """Persist the UI language and return the settings path.

    Raises:
        ValueError: If ``lang`` is not a supported language
    """
    normalized = normalize_lang(lang)
    if not normalized:
        raise ValueError("unsupported UI language (expected us|ru)")

    path = settings_path()
    path.parent.mkdir(parents=True, exist_ok=True, mode=0o700)
    path.write_text(json.dumps({"lang": normalized}, indent=2) + "\n", encoding="utf-8")
    path.chmod(0o600)
    logger.info(f"UI language set to {normalized} in {path}")
    return path
