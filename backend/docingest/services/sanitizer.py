import re

# C0 controls except \t, \n and \r, plus DEL.
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
# Noncharacter block left behind by PDF text layers; includes U+FFFD.
_PDF_ARTIFACTS = re.compile(r"[\ufff0-\uffff]")
_EXCESS_NEWLINES = re.compile(r"\n{3,}")
_EXCESS_SPACES = re.compile(r"[ \t]{2,}")


def sanitize_text(raw: str) -> str:
    """Strip extraction artifacts and collapse whitespace.

    Idempotent: characters are removed before whitespace runs are collapsed,
    so a second pass finds nothing left to do.
    """
    text = _CONTROL_CHARS.sub("", raw)
    text = _PDF_ARTIFACTS.sub("", text)
    text = _EXCESS_NEWLINES.sub("\n\n", text)
    text = _EXCESS_SPACES.sub(" ", text)
    return text.strip()
