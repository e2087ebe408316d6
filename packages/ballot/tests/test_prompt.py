import io
from unittest.mock import MagicMock

import pytest

from ballot.prompt import OperatorPrompt, is_assent


@pytest.mark.parametrize("answer", ["n", "N", " n \n", "n\n"])
def test_n_declines(answer):
    assert not is_assent(answer)


@pytest.mark.parametrize("answer", ["", "\n", "y", "Y", "yes", "no", "nope", None])
def test_anything_else_assents(answer):
    assert is_assent(answer)


def test_confirm_reads_one_line():
    out = io.StringIO()
    prompt = OperatorPrompt(io.StringIO("n\ny\n"), out)
    assert prompt.confirm("Confirm minting 5 to 0xabc") is False
    assert out.getvalue() == "Confirm minting 5 to 0xabc (Y/n): "
    assert prompt.confirm("again") is True


def test_end_of_input_counts_as_assent():
    assert OperatorPrompt(io.StringIO(""), io.StringIO()).confirm("go") is True


def test_assume_yes_never_reads():
    stream = MagicMock()
    out = io.StringIO()
    assert OperatorPrompt(stream, out, assume_yes=True).confirm("go") is True
    stream.readline.assert_not_called()
    assert "(--yes)" in out.getvalue()


def test_owned_input_closed_on_exit():
    stream = io.StringIO("y\n")
    with OperatorPrompt(stream, io.StringIO(), owns_input=True) as prompt:
        prompt.confirm("go")
    assert stream.closed
    assert prompt.closed


def test_borrowed_input_left_open():
    stream = io.StringIO("y\n")
    with OperatorPrompt(stream, io.StringIO()) as prompt:
        prompt.confirm("go")
    assert not stream.closed


def test_closed_on_error_path():
    stream = io.StringIO()
    with pytest.raises(KeyError):
        with OperatorPrompt(stream, io.StringIO(), owns_input=True):
            raise KeyError("boom")
    assert stream.closed


def test_confirm_after_close():
    prompt = OperatorPrompt(io.StringIO(), io.StringIO())
    prompt.close()
    prompt.close()
    with pytest.raises(RuntimeError):
        prompt.confirm("go")
