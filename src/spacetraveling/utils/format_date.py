from __future__ import annotations

import re
from datetime import datetime
from typing import Optional, Union

from ..prismic.types import parse_timestamp

# pt-BR abbreviations, lower case like the rest of the site
MONTHS_PT_BR = ("jan", "fev", "mar", "abr", "mai", "jun", "jul", "ago", "set", "out", "nov", "dez")

_token_re = re.compile(r"yyyy|MMM|MM|dd|HH|mm")


def format_date(value: Union[datetime, str, None], fmt: str = "dd MMM yyyy") -> str:
    """
    Format a publication date, e.g. 25 mar 2021.

    Accepts a datetime or a Prismic timestamp string. Supported tokens:
    dd, MM, MMM, yyyy, HH, mm. Unknown or empty dates give "".
    """
    dt: Optional[datetime] = parse_timestamp(value)
    if dt is None:
        return ""

    def repl(m: "re.Match[str]") -> str:
        tok = m.group(0)
        if tok == "yyyy":
            return f"{dt.year:04d}"
        if tok == "MMM":
            return MONTHS_PT_BR[dt.month - 1]
        if tok == "MM":
            return f"{dt.month:02d}"
        if tok == "dd":
            return f"{dt.day:02d}"
        if tok == "HH":
            return f"{dt.hour:02d}"
        return f"{dt.minute:02d}"

    return _token_re.sub(repl, fmt)
