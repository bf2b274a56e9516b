"""Header field encoding: RFC 2047 encoded words and RFC 5322 folding.

``HeaderEncoder`` turns a field name and a Unicode value into the
US-ASCII text that follows ``Name: ``. Words that are not printable
US-ASCII are wrapped in encoded words, runs of plain words stay as they
are, and the result is folded at whitespace so lines stay within the
configured limit (78 by default, 998 at most).

Folding never changes the value: a fold is a CRLF inserted before
existing whitespace, which is exactly what RFC 5322 unfolding removes.
Whitespace between two adjacent encoded words is ignored by decoders, so
consecutive non-ASCII words are encoded together, spaces included, and
split into several encoded words only where a line has to end, after
a blank where one fits.
"""

import base64
import math
import re
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple
from urllib.parse import quote

from mimecraft.utils.errors import HeaderInjectionError, InvalidHeaderNameError

from .constants import CRLF, Defaults, LineLimits

# field-name = 1*ftext, ftext = %d33-57 / %d59-126
_NAME_RE = re.compile(r"^[\x21-\x39\x3b-\x7e]+$")
_WSP_SPLIT_RE = re.compile(r"([ \t]+)")
_PLAIN_WORD_RE = re.compile(r"^[\x21-\x7e]*$")
_MAILBOX_RE = re.compile(r"^(?P<display>.*?)[ \t]*<(?P<addr>[^<>]*)>$")

# RFC 2047 5(3): characters allowed unescaped in a Q-encoded phrase word
_Q_SAFE = frozenset(
    b"ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789!*+-/"
)

# RFC 2231 attribute-char beyond what quote() always keeps
_ATTR_SAFE = "!#$&+^`|"


@dataclass
class _Unit:
    """A piece of header text together with the whitespace before it."""

    ws: str
    text: str
    encoded: bool
    suffix: str = ""


class _Folder:
    """Accumulates units into folded lines."""

    def __init__(self, start_col: int, limit: int):
        self.lines: List[str] = [""]
        self.col = start_col
        self.limit = limit
        self.empty = True

    def room(self, ws: str) -> int:
        return self.limit - self.col - len(ws)

    def fold(self) -> None:
        self.lines.append("")
        self.col = 0
        self.empty = True

    def add(self, ws: str, text: str) -> None:
        if not self.empty and self.col + len(ws) + len(text) > self.limit:
            self.fold()
        self.append(ws, text)

    def append(self, ws: str, text: str) -> None:
        self.lines[-1] += ws + text
        self.col += len(ws) + len(text)
        self.empty = False

    def render(self) -> str:
        return CRLF.join(self.lines)


def _q_length(data: bytes) -> int:
    return sum(1 if byte in _Q_SAFE or byte == 0x20 else 3 for byte in data)


def _b_length(data: bytes) -> int:
    return 4 * math.ceil(len(data) / 3)


def _q_encode(data: bytes) -> str:
    out = []
    for byte in data:
        if byte == 0x20:
            out.append("_")
        elif byte in _Q_SAFE:
            out.append(chr(byte))
        else:
            out.append(f"={byte:02X}")
    return "".join(out)


def _quote_string(value: str) -> str:
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


def _unquote_string(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] == '"':
        return re.sub(r"\\(.)", r"\1", value[1:-1])
    return value


class HeaderEncoder:
    """Encodes and folds header field values.

    Args:
        charset: Charset for encoded words. Text it cannot represent is
            encoded as UTF-8 instead.
        max_line_length: Target line length, at most 998.
        address_separator: Character placed between mailboxes in
            address-list fields.
    """

    def __init__(
        self,
        charset: str = Defaults.CHARSET,
        max_line_length: int = LineLimits.HEADER_SOFT,
        address_separator: str = Defaults.ADDRESS_SEPARATOR,
    ):
        if not 0 < max_line_length <= LineLimits.HARD:
            raise ValueError(f"max_line_length must be between 1 and {LineLimits.HARD}")

        self.charset = charset
        self.max_line_length = max_line_length
        self.address_separator = address_separator

    ## Validation

    @staticmethod
    def check_name(name: str) -> None:
        """Reject field names that contain line breaks or non-ftext characters."""
        if "\r" in name or "\n" in name:
            raise HeaderInjectionError(
                f"Line break in header field name {name!r}", details={"field": name}
            )
        if not _NAME_RE.match(name):
            raise InvalidHeaderNameError(
                f"Invalid header field name {name!r}", details={"field": name}
            )

    @staticmethod
    def check_value(name: str, value: str) -> None:
        """Reject values that contain a CR or LF."""
        if "\r" in value or "\n" in value:
            raise HeaderInjectionError(
                f"Line break in value of header field {name!r}",
                details={"field": name},
            )

    ## Public API

    def encode(self, name: str, value: str) -> str:
        """Encode an unstructured field value.

        Returns:
            The text that follows ``Name: `` up to, not including, the final
            CRLF. Continuation lines are joined with CRLF and start with
            whitespace.

        Raises:
            HeaderInjectionError: If the name or value holds CR or LF.
            InvalidHeaderNameError: If the name is not a valid field name.
        """
        self.check_name(name)
        self.check_value(name, value)

        folder = _Folder(len(name) + 2, self.max_line_length)
        for unit in self._units(name, value.strip(" \t")):
            self._place(folder, unit)

        return folder.render()

    def encode_list(self, name: str, items: Sequence[str], separator: str = ",") -> str:
        """Encode a list-valued field, folding between items where possible.

        An empty separator gives a whitespace-separated list (References).
        """
        self.check_name(name)
        for item in items:
            self.check_value(name, item)

        entries = [self._units(name, item.strip(" \t")) for item in items]
        return self._place_entries(name, entries, separator)

    def encode_addresses(self, name: str, mailboxes: Sequence[str]) -> str:
        """Encode an address-list field (From, To, Cc, Reply-To, Resent-*).

        A display name with non-ASCII characters is encoded as a whole so
        that quoting and specials survive; the angle-bracket address stays
        readable.
        """
        self.check_name(name)
        for mailbox in mailboxes:
            self.check_value(name, mailbox)

        entries = [self._mailbox_units(name, mailbox.strip(" \t")) for mailbox in mailboxes]
        return self._place_entries(name, entries, self.address_separator)

    def format_field(self, name: str, value: str) -> bytes:
        """Full ``Name: value CRLF`` line for an unstructured field."""
        return self._line(name, self.encode(name, value))

    def format_list(self, name: str, items: Sequence[str], separator: str = ",") -> bytes:
        """Full field line for a list-valued field."""
        return self._line(name, self.encode_list(name, items, separator))

    def format_addresses(self, name: str, mailboxes: Sequence[str]) -> bytes:
        """Full field line for an address-list field."""
        return self._line(name, self.encode_addresses(name, mailboxes))

    def format_parameterized(
        self, name: str, value: str, params: Sequence[Tuple[str, Optional[str]]]
    ) -> bytes:
        """Full field line for a MIME field with parameters.

        ``Content-Type: text/plain; charset="utf-8"``. Parameters whose
        value is None are skipped. Values that are not printable ASCII, or
        too long for one line, use RFC 2231 extended syntax with
        continuations.
        """
        self.check_name(name)
        self.check_value(name, value)

        entries = [self._units(name, value.strip(" \t"))]
        for key, param_value in params:
            if param_value is None:
                continue
            self.check_value(name, param_value)
            entries.extend([_Unit("", segment, False)] for segment in self._parameter(key, param_value))

        return self._line(name, self._place_entries(name, entries, ";"))

    ## Internals

    @staticmethod
    def _line(name: str, text: str) -> bytes:
        return f"{name}: {text}{CRLF}".encode("ascii")

    def _hard_word_limit(self, name: str) -> int:
        return LineLimits.HARD - len(name) - 2

    def _needs_encoding(self, name: str, ws: str, word: str) -> bool:
        if not _PLAIN_WORD_RE.match(word):
            return True
        if "=?" in word or "?=" in word:
            return True
        return len(ws) + len(word) > self._hard_word_limit(name)

    def _units(self, name: str, value: str) -> List[_Unit]:
        """Split a value into plain words and merged encoded runs."""
        if not value:
            return []

        pieces = _WSP_SPLIT_RE.split(value)
        words = [("", pieces[0])] + [
            (pieces[i], pieces[i + 1]) for i in range(1, len(pieces) - 1, 2)
        ]

        units: List[_Unit] = []
        for ws, word in words:
            encoded = self._needs_encoding(name, ws, word)
            if encoded and units and units[-1].encoded:
                units[-1].text += ws + word
            else:
                units.append(_Unit(ws, word, encoded))

        return units

    def _mailbox_units(self, name: str, mailbox: str) -> List[_Unit]:
        match = _MAILBOX_RE.match(mailbox)
        if not match or not match.group("display"):
            return self._units(name, mailbox)

        display = match.group("display")
        if _PLAIN_WORD_RE.match(display.replace(" ", "").replace("\t", "")):
            return self._units(name, mailbox)

        addr_units = self._units(name, f"<{match.group('addr')}>")
        addr_units[0].ws = " "
        return [_Unit("", _unquote_string(display), True)] + addr_units

    def _place_entries(
        self, name: str, entries: List[List[_Unit]], separator: str
    ) -> str:
        entries = [units for units in entries if units]
        folder = _Folder(len(name) + 2, self.max_line_length)

        for index, units in enumerate(entries):
            units = [_Unit(u.ws, u.text, u.encoded, u.suffix) for u in units]
            if index < len(entries) - 1:
                units[-1].suffix += separator

            if index > 0:
                units[0].ws = " "
                width = sum(self._estimate(unit) for unit in units)
                if not folder.empty and folder.col + width > self.max_line_length >= width:
                    folder.fold()

            for unit in units:
                self._place(folder, unit)

        return folder.render()

    def _estimate(self, unit: _Unit) -> int:
        fixed = len(unit.ws) + len(unit.suffix)
        if not unit.encoded:
            return fixed + len(unit.text)
        label, data, use_q = self._choose(unit.text)
        payload = _q_length(data) if use_q else _b_length(data)
        return fixed + len(label) + 7 + payload

    def _place(self, folder: _Folder, unit: _Unit) -> None:
        if not unit.encoded:
            folder.add(unit.ws, unit.text + unit.suffix)
            return

        label, _, use_q = self._choose(unit.text)
        overhead = len(label) + 7  # =?label?X?...?=
        remaining = unit.text
        lead = unit.ws

        while remaining:
            room = min(folder.room(lead) - len(unit.suffix), LineLimits.ENCODED_WORD)
            count = self._fit(remaining, room - overhead, label, use_q)

            if not folder.empty and (
                count == 0 or (count < len(remaining) and room < overhead + 8)
            ):
                folder.fold()
                lead = lead or " "
                continue

            count = max(count, 1)
            if count < len(remaining):
                boundary = self._word_boundary(remaining, count)
                if boundary is None and not folder.empty:
                    folder.fold()
                    lead = lead or " "
                    continue
                if boundary is not None:
                    count = boundary
            chunk, remaining = remaining[:count], remaining[count:]
            word = self._encoded_word(chunk, label, use_q)
            folder.append(lead, word if remaining else word + unit.suffix)
            lead = " "

    @staticmethod
    def _word_boundary(text: str, count: int) -> Optional[int]:
        """Split point just after the last blank before ``count``, if any.

        The blank stays at the end of the earlier encoded word. Words are
        only cut in the middle when a whole line cannot hold them.
        """
        blank = max(text.rfind(" ", 0, count), text.rfind("\t", 0, count))
        return blank + 1 if blank > 0 else None

    def _choose(self, text: str) -> Tuple[str, bytes, bool]:
        """Pick the charset label and Q or B, whichever is shorter."""
        try:
            label, data = self.charset.upper(), text.encode(self.charset)
        except (UnicodeEncodeError, LookupError):
            label, data = "UTF-8", text.encode("utf-8")

        return label, data, _q_length(data) < _b_length(data)

    @staticmethod
    def _fit(text: str, budget: int, label: str, use_q: bool) -> int:
        """Count how many leading characters fit in ``budget`` encoded chars."""
        charset = label.lower()
        nbytes = 0
        qlen = 0

        for count, char in enumerate(text):
            data = char.encode(charset)
            if use_q:
                qlen += _q_length(data)
                if qlen > budget:
                    return count
            else:
                nbytes += len(data)
                if 4 * math.ceil(nbytes / 3) > budget:
                    return count

        return len(text)

    def _encoded_word(self, text: str, label: str, use_q: bool) -> str:
        data = text.encode(label.lower())
        if use_q:
            return f"=?{label}?Q?{_q_encode(data)}?="
        return f"=?{label}?B?{base64.b64encode(data).decode('ascii')}?="

    def _parameter(self, key: str, value: str) -> List[str]:
        """Render one parameter, as several segments when continued."""
        limit = LineLimits.HARD // 2
        if _PLAIN_WORD_RE.match(value.replace(" ", "")) and len(value) <= limit:
            return [f"{key}={_quote_string(value)}"]

        try:
            label, data = self.charset.upper(), value.encode(self.charset)
        except (UnicodeEncodeError, LookupError):
            label, data = "UTF-8", value.encode("utf-8")

        encoded = quote(data, safe=_ATTR_SAFE)
        # one column for the folding space, one for the ";" that follows
        width = self.max_line_length - 2

        single = f"{key}*={label}''{encoded}"
        if len(single) <= width:
            return [single]

        rendered = []
        start = 0
        while start < len(encoded):
            prefix = f"{key}*{len(rendered)}*=" + (f"{label}''" if not rendered else "")
            size = max(min(width - len(prefix), LineLimits.PARAMETER_SEGMENT), 3)
            end = min(start + size, len(encoded))
            # do not split a %XX escape
            percent = encoded.rfind("%", end - 2, end)
            if percent > start and end < len(encoded):
                end = percent
            rendered.append(prefix + encoded[start:end])
            start = end

        return rendered
