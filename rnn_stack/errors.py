""" Exceptions raised by the recurrent stack. """


class RecurrentError(Exception):
    """Base class for every error raised by rnn_stack."""


class ConfigurationError(RecurrentError, ValueError):
    """Raised at construction time when the options cannot build a stack.

    The module is not created; the caller has to rebuild it with corrected
    options.
    """


class ShapeMismatchError(RecurrentError, ValueError):
    """Raised by ``forward`` when the input or the initial state has the
    wrong rank or axis length. The module stays usable.
    """

    def __init__(self, what, expected, got):
        self.what = what
        self.expected = tuple(expected)
        self.got = tuple(got)
        super().__init__(
            f"{what}: expected shape {self.expected}, got {self.got}"
        )
