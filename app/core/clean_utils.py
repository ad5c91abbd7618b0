from bs4 import BeautifulSoup
import re


def clean_html(raw_html: str | None) -> str:
    """
    Entfernt HTML-Tags aus einem gegebenen HTML-Text.

    Args:
        raw_html (str): Eingabetext mit HTML.

    Returns:
        str: Nur noch der sichtbare Text ohne HTML-Tags.
    """
    if not raw_html:
        return ""
    return BeautifulSoup(raw_html, "html.parser").get_text().strip()


_SECRET_PARAM = re.compile(r"(?i)(api[_-]?key|apikey|token|secret)=([^&\s]+)")


def redact_secrets(text, secrets=()) -> str:
    """API-Keys aus URLs/Fehlertexten entfernen, bevor sie geloggt oder ausgeliefert werden."""
    if not isinstance(text, str):
        return text
    redacted = _SECRET_PARAM.sub(r"\1=***", text)
    for s in secrets:
        if s:
            redacted = redacted.replace(s, "***")
    return redacted
