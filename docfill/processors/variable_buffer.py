"""
Variable buffer for placeholder matching across split text runs.

Word frequently splits what reads as one word into several runs (formatting
changes, spell-check marks, revision ids), so a placeholder such as
``[with_color]`` may arrive as ``[wi`` + ``</w:t></w:r><w:r>...<w:t>`` +
``th_color]``. The buffer withholds tokens from the moment an opening
delimiter is seen, and once a closing delimiter arrives it joins the text of
the held ``w:t`` runs into one candidate string and looks it up in the
replacement mapping.
"""

import logging
from typing import List, Optional, Tuple

from ..config import FillConfig
from ..core.models import Attr, CharData, EndElement, Name, StartElement, Token, copy_token
from ..utils.namespace_utils import fix_ns, qualified_name
from ..utils.xml_tokens import TokenEncoder

logger = logging.getLogger(__name__)

XML_SPACE = Name("xml", "space")


class VariableBuffer:
    """
    Bounded queue of withheld tokens plus the matching protocol.

    Each held token is stored together with the text-run flag that was in
    effect when it arrived; only text captured inside the text-run element
    contributes to the candidate.

    The start tag of a text-run element is written only once the next token
    is known, so a replacement can still mark it ``xml:space="preserve"``
    when the merged text starts or ends with whitespace.

    Counters:
        replacements: Candidates replaced by a mapping value
        unmatched_flushes: Candidates written back unchanged (no key found,
            or the markup they span could not be dropped safely)
        forced_flushes: Flushes caused by reaching capacity
    """

    def __init__(self, config: FillConfig, encoder: TokenEncoder):
        self.config = config
        self.encoder = encoder
        self.capacity = config.buffer_capacity
        self.in_text_run = False
        self.replacements = 0
        self.unmatched_flushes = 0
        self.forced_flushes = 0
        self._text_run = config.text_run_name
        self._entries: List[Tuple[Token, bool]] = []
        self._text_run_start: Optional[StartElement] = None

    def __len__(self) -> int:
        return len(self._entries)

    def is_full(self) -> bool:
        return len(self._entries) >= self.capacity

    def push(self, token: Token):
        """
        Route one decoded token: hold it, write it through, or run a match.

        Args:
            token: Next token from the decoder
        """
        self._track_text_run(token)

        if self._entries:
            self._append(token)
            if isinstance(token, CharData) and self.config.closing in token.text:
                self.process()
            return

        if isinstance(token, CharData):
            opening_idx = token.text.find(self.config.opening)
            if opening_idx != -1:
                self._append(token)
                if token.text.find(self.config.closing, opening_idx + 1) != -1:
                    self.process()
                return

        self._write_text_run_start()
        if isinstance(token, StartElement) and token.name == self._text_run:
            self._text_run_start = token
            return
        self._write(token)

    def candidate(self) -> str:
        """Concatenated text-run text of the held tokens."""
        return "".join(
            token.text
            for token, in_text_run in self._entries
            if in_text_run and isinstance(token, CharData)
        )

    def process(self) -> bool:
        """
        Try to replace a variable in the held tokens.

        On a match the held tokens are dropped and a single CharData with the
        replaced candidate text is written in their place. Otherwise every
        held token is written back unchanged.

        Returns:
            True if a replacement was made
        """
        candidate = self.candidate()
        match = self._find_key(candidate)
        if match is None:
            logger.debug(f"No variable matched candidate {candidate!r}")
            self.unmatched_flushes += 1
            self.flush()
            return False

        key, value, start = match
        if not self._span_is_balanced():
            logger.warning(
                f"Variable {key} spans markup that cannot be merged into one text run; left unchanged"
            )
            self.unmatched_flushes += 1
            self.flush()
            return False

        replaced = candidate[:start] + value + candidate[start + len(key):]
        dropped = len(self._entries)
        self._entries = []
        if replaced != replaced.strip() and self._text_run_start is not None:
            self._text_run_start = self._preserve_space(self._text_run_start)
        self._write_text_run_start()
        self._write(CharData(replaced))
        self.replacements += 1
        logger.debug(f"Replaced {key} ({dropped} tokens merged)")
        return True

    def flush(self):
        """Write every held token unchanged, in order, and clear the buffer."""
        self._write_text_run_start()
        entries, self._entries = self._entries, []
        for token, _ in entries:
            self._write(token)

    def force_flush(self):
        """Flush because the buffer reached capacity."""
        logger.debug(
            f"Buffer reached capacity ({self.capacity} tokens) without a closing "
            f"{self.config.closing!r}; flushing unchanged"
        )
        self.forced_flushes += 1
        self.flush()

    def _track_text_run(self, token: Token):
        if isinstance(token, StartElement) and token.name == self._text_run:
            self.in_text_run = True
        elif isinstance(token, EndElement) and token.name == self._text_run:
            self.in_text_run = False

    def _append(self, token: Token):
        self._entries.append((copy_token(token), self.in_text_run))

    def _write(self, token: Token):
        self.encoder.encode_token(fix_ns(token))

    def _write_text_run_start(self):
        if self._text_run_start is not None:
            start, self._text_run_start = self._text_run_start, None
            self._write(start)

    @staticmethod
    def _preserve_space(start: StartElement) -> StartElement:
        preserve = Attr(XML_SPACE, "preserve")
        if preserve in start.attrs:
            return start
        attrs = [preserve if attr.name == XML_SPACE else attr for attr in start.attrs]
        if preserve not in attrs:
            attrs.append(preserve)
        return StartElement(start.name, attrs)

    def _find_key(self, candidate: str) -> Optional[Tuple[str, str, int]]:
        # earliest occurrence wins, then the longest key, then lexical order
        best = None
        for key, value in self.config.replacements.items():
            start = candidate.find(key)
            if start == -1:
                continue
            rank = (start, -len(key), key)
            if best is None or rank < best[0]:
                best = (rank, key, value, start)
        if best is None:
            return None
        _, key, value, start = best
        return key, value, start

    def _span_is_balanced(self) -> bool:
        """
        Check that the held markup can be dropped without breaking nesting.

        Elements the span closes must be reopened, with the same names and in
        mirror order, before it ends. ``</w:t></w:r><w:r><w:t>`` qualifies;
        a span that leaves a hyperlink or a paragraph half open does not.
        """
        closed = []
        opened = []
        for token, _ in self._entries:
            if isinstance(token, StartElement):
                opened.append(token.name)
            elif isinstance(token, EndElement):
                if not opened:
                    closed.append(token.name)
                elif opened[-1] == token.name:
                    opened.pop()
                else:
                    logger.debug(f"Mismatched </{qualified_name(token.name)}> inside held tokens")
                    return False
        return list(reversed(opened)) == closed
