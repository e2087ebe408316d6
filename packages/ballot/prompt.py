import logging
import sys
from typing import Optional, TextIO

logger = logging.getLogger(__name__)


def is_assent(answer: Optional[str]) -> bool:
    """Anything but "n" (any case, surrounding whitespace ignored) means go ahead."""
    if answer is None:
        return True
    return answer.strip().lower() != "n"


class OperatorPrompt:
    """One yes/no question per write, read from a line-oriented input stream.

    Use as a context manager. The input stream is closed on exit only when
    ``owns_input`` is set; stdin is never closed.
    """

    def __init__(
        self,
        input_stream: Optional[TextIO] = None,
        output_stream: Optional[TextIO] = None,
        assume_yes: bool = False,
        owns_input: bool = False,
    ):
        self.input = input_stream if input_stream is not None else sys.stdin
        self.output = output_stream if output_stream is not None else sys.stdout
        self.assume_yes = assume_yes
        self.owns_input = owns_input and self.input is not sys.stdin
        self.closed = False

    def __enter__(self) -> "OperatorPrompt":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        if self.closed:
            return
        if self.owns_input:
            self.input.close()
        self.closed = True

    def say(self, line: str) -> None:
        self.output.write(line + "\n")
        self.output.flush()

    def confirm(self, summary: str) -> bool:
        if self.closed:
            raise RuntimeError("prompt already closed")
        question = f"{summary} (Y/n): "
        if self.assume_yes:
            self.output.write(question + "y (--yes)\n")
            self.output.flush()
            return True
        self.output.write(question)
        self.output.flush()
        # readline() returns "" at end of input, which counts as assent
        answer = self.input.readline()
        accepted = is_assent(answer)
        logger.info("operator answered", extra={"summary": summary, "accepted": accepted})
        return accepted
