"""Turn free-text instructions into a destination URL and a browser command."""

from __future__ import annotations

import logging
import re
import shlex
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping
from urllib.parse import quote_plus, urlsplit

from agentrelay.config import DEFAULT_SEARCH_URL
from agentrelay.environment import (
    BROWSER_CATALOGUE,
    BROWSERS_BY_NAME,
    BinaryProbe,
    EnvironmentSnapshot,
    ShellProbe,
    current_user,
    find_linux_binary,
    find_windows_executable,
)
from agentrelay.schemas import OperatingSystem

logger = logging.getLogger(__name__)


class BrowserNotFoundError(Exception):
    """Raised when an explicitly requested browser is not installed."""

    pass


# Phrase -> URL. "{username}" is filled in by build_site_shortcuts.
SITE_SHORTCUT_TEMPLATES: dict[str, str] = {
    "my github profile": "https://github.com/{username}",
    "my github repos": "https://github.com/{username}?tab=repositories",
    "my github repositories": "https://github.com/{username}?tab=repositories",
    "github": "https://github.com",
    "gitlab": "https://gitlab.com",
    "youtube": "https://www.youtube.com",
    "gmail": "https://mail.google.com",
    "google drive": "https://drive.google.com",
    "google docs": "https://docs.google.com",
    "google maps": "https://maps.google.com",
    "google calendar": "https://calendar.google.com",
    "google": "https://www.google.com",
    "stack overflow": "https://stackoverflow.com",
    "stackoverflow": "https://stackoverflow.com",
    "hacker news": "https://news.ycombinator.com",
    "reddit": "https://www.reddit.com",
    "twitter": "https://x.com",
    "facebook": "https://www.facebook.com",
    "instagram": "https://www.instagram.com",
    "linkedin": "https://www.linkedin.com",
    "wikipedia": "https://www.wikipedia.org",
    "amazon": "https://www.amazon.com",
    "netflix": "https://www.netflix.com",
    "spotify": "https://open.spotify.com",
    "whatsapp": "https://web.whatsapp.com",
    "chatgpt": "https://chatgpt.com",
    "pypi": "https://pypi.org",
    "npmjs": "https://www.npmjs.com",
}

# Site names recognized as a destination even without a shortcut entry
POPULAR_SITES: tuple[str, ...] = (
    "google",
    "youtube",
    "github",
    "gmail",
    "reddit",
    "twitter",
    "facebook",
    "instagram",
    "linkedin",
    "wikipedia",
    "amazon",
    "netflix",
    "twitch",
    "discord",
    "notion",
)

# Priority order for extract_browser_name
BROWSER_NAMES: tuple[str, ...] = tuple(spec.name for spec in BROWSER_CATALOGUE)

KNOWN_TLDS: tuple[str, ...] = (
    "com", "org", "net", "io", "dev", "ai", "app", "co", "edu", "gov", "me",
    "tv", "info", "xyz", "tech", "site", "uk", "de", "fr", "in", "us", "ca",
    "au", "ly", "gg", "so",
)

_SCHEME_RE = re.compile(r"^[a-z][a-z0-9+.-]*://", re.IGNORECASE)
_DOMAIN_RE = re.compile(
    r"(?<![\w.-])((?:[\w-]+\.)+(?:" + "|".join(KNOWN_TLDS) + r")(?::\d+)?(?:/\S*)?)(?=$|[\s,;!?)]|\.(?:\s|$))",
    re.IGNORECASE,
)
_ACTION_VERB_RE = re.compile(r"\b(?:open|launch|start|go to|browse|navigate)\b")
_LEADING_VERB_RE = re.compile(
    r"^(?:please\s+)?(?:open(?:\s+up)?|launch|start|go\s+to|browse(?:\s+to)?|navigate(?:\s+to)?)\b\s*",
    re.IGNORECASE,
)
_BROWSER_NAME_RES: dict[str, re.Pattern[str]] = {
    name: re.compile(rf"\b{name}\b") for name in BROWSER_NAMES
}


def build_site_shortcuts(username: str) -> Mapping[str, str]:
    """Build the read-only shortcut table for the given user."""
    return MappingProxyType({
        phrase: url.replace("{username}", username)
        for phrase, url in SITE_SHORTCUT_TEMPLATES.items()
    })


def _match_shortcut(lowered: str, shortcuts: Mapping[str, str]) -> str | None:
    """Return the URL of the longest shortcut phrase contained in the text."""
    matches = [phrase for phrase in shortcuts if phrase in lowered]
    if not matches:
        return None
    return shortcuts[max(matches, key=len)]


def build_search_url(query: str, search_url: str = DEFAULT_SEARCH_URL) -> str:
    """Fill the search template with the URL-escaped query."""
    return search_url.replace("{query}", quote_plus(query.strip()))


def resolve_url(
    text: str,
    shortcuts: Mapping[str, str] | None = None,
    search_url: str = DEFAULT_SEARCH_URL,
) -> str:
    """Resolve free text to a navigable URL.

    Rules, first match wins: explicit scheme, longest shortcut phrase,
    bare domain, then a search query for the original text.

    Args:
        text: Free-text destination
        shortcuts: Phrase -> URL table (defaults to the current user's table)
        search_url: Search template containing {query}

    Returns:
        URL string
    """
    stripped = text.strip()
    if _SCHEME_RE.match(stripped):
        return stripped

    if shortcuts is None:
        shortcuts = build_site_shortcuts(current_user())

    url = _match_shortcut(stripped.lower(), shortcuts)
    if url:
        return url

    domain = _DOMAIN_RE.search(stripped)
    if domain:
        return f"https://{domain.group(1)}"

    return build_search_url(stripped, search_url)


def extract_browser_name(text: str) -> str | None:
    """Return the first known browser named in the text, in priority order.

    Names match as whole words rather than raw substrings, so "knowledge"
    does not name edge and "search" does not name arc.
    """
    lowered = text.lower()
    for name in BROWSER_NAMES:
        if _BROWSER_NAME_RES[name].search(lowered):
            return name
    return None


def is_browser_intent(text: str, shortcuts: Mapping[str, str] | None = None) -> bool:
    """Decide whether an instruction is a request to open something in a browser."""
    if extract_browser_name(text):
        return True

    lowered = text.lower()
    if not _ACTION_VERB_RE.search(lowered):
        return False

    phrases = shortcuts.keys() if shortcuts is not None else SITE_SHORTCUT_TEMPLATES.keys()
    if any(phrase in lowered for phrase in phrases):
        return True
    if re.search(r"[a-z][a-z0-9+.-]*://", lowered):
        return True
    return any(re.search(rf"\b{site}\b", lowered) for site in POPULAR_SITES)


def _browser_not_found(hint: str, environment: EnvironmentSnapshot) -> BrowserNotFoundError:
    installed = ", ".join(environment.installed_browsers) or "none detected"
    return BrowserNotFoundError(
        f'Browser "{hint}" was not found on this system. Installed browsers: {installed}. '
        "If it is installed as a snap or flatpak, make sure its launcher is on PATH "
        "(e.g. /snap/bin or /var/lib/flatpak/exports/bin)."
    )


def build_browser_command(
    browser_hint: str | None,
    url: str,
    environment: EnvironmentSnapshot,
    probe: BinaryProbe | None = None,
) -> list[str]:
    """Build the argv that opens url, in the hinted browser when one is given.

    Raises:
        BrowserNotFoundError: On Linux, if the hinted browser has no binary on PATH
    """
    hint = browser_hint.lower().strip() if browser_hint else None
    spec = BROWSERS_BY_NAME.get(hint) if hint else None

    if environment.os == OperatingSystem.LINUX:
        if not hint:
            return ["xdg-open", url]
        probe = probe or ShellProbe()
        if spec is not None:
            binary = find_linux_binary(spec, probe)
        else:
            binary = hint if probe.which(hint) else None
        if binary is None:
            raise _browser_not_found(hint, environment)
        return [binary, url]

    if environment.os == OperatingSystem.MACOS:
        if spec is not None and spec.macos_app:
            return ["open", "-a", spec.macos_app, url]
        return ["open", url]

    # The executable is started directly: the URL never passes through cmd.exe
    if spec is not None:
        executable = find_windows_executable(spec, probe or ShellProbe())
        if executable:
            return [executable, url]
        logger.warning(f"Browser {hint} not found, using the default handler")
    return ["rundll32", "url.dll,FileProtocolHandler", url]


def default_open_command(os_family: OperatingSystem) -> str:
    """Human-readable form of the OS default URL handler."""
    if os_family == OperatingSystem.MACOS:
        return "open <url>"
    if os_family == OperatingSystem.WINDOWS:
        return 'start "" <url>'
    return "xdg-open <url>"


@dataclass(frozen=True)
class BrowserLaunch:
    """A resolved browser launch: where to go and how."""

    url: str
    browser: str | None
    command: tuple[str, ...]

    @property
    def command_line(self) -> str:
        return shlex.join(self.command)


def _strip_launch_words(text: str) -> str:
    """Remove the browser mention and leading action verb, keeping the destination."""
    cleaned = text
    for name in BROWSER_NAMES:
        cleaned = re.sub(
            rf"(?:\b(?:in|with|using|on|via)\s+)?(?:\b(?:the|my)\s+)?"
            rf"(?:\b(?:google|mozilla|microsoft)\s+)?\b{name}\b(?:\s+browser)?",
            " ",
            cleaned,
            flags=re.IGNORECASE,
        )
    cleaned = re.sub(r"\bplease\b", " ", cleaned, flags=re.IGNORECASE)
    cleaned = " ".join(cleaned.split())
    cleaned = _LEADING_VERB_RE.sub("", cleaned)
    return cleaned.strip(" .,!?")


def _search_home(search_url: str) -> str:
    parts = urlsplit(search_url)
    return f"{parts.scheme}://{parts.netloc}"


def plan_browser_launch(
    prompt: str,
    environment: EnvironmentSnapshot,
    probe: BinaryProbe | None = None,
    search_url: str = DEFAULT_SEARCH_URL,
    shortcuts: Mapping[str, str] | None = None,
) -> BrowserLaunch:
    """Work out the URL, browser and argv for an open-in-browser instruction.

    Raises:
        BrowserNotFoundError: If a named browser is not installed
    """
    browser = extract_browser_name(prompt)
    destination = _strip_launch_words(prompt)
    if shortcuts is None:
        shortcuts = build_site_shortcuts(environment.username)

    if destination:
        url = resolve_url(destination, shortcuts, search_url)
    else:
        url = _search_home(search_url)

    command = build_browser_command(browser, url, environment, probe)
    logger.debug(f"Planned browser launch: browser={browser}, url={url}")
    return BrowserLaunch(url=url, browser=browser, command=tuple(command))
