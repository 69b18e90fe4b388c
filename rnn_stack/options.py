""" Options accepted by the recurrent stack and their validation. """
import dataclasses
from dataclasses import dataclass

from rnn_stack.errors import ConfigurationError

NONLINEARITIES = ("tanh", "relu")


@dataclass(frozen=True)
class RecurrentOptions:
    """Configuration of a recurrent stack.

    Arguments
    ---------
    input_size : int
        Feature dimensionality of the input sequence.
    hidden_size : int
        Number of output neurons of every layer.
    num_layers : int
        Number of stacked layers.
    dropout : float
        Dropout applied between layers in training mode, in [0, 1).
    nonlinearity : str
        Activation of the plain RNN (tanh, relu). Ignored by GRU and LSTM.
    bias : bool
        If True, the additive biases b_ih and b_hh are adopted.
    bidirectional : bool
        Accepted for API compatibility, only False is supported.
    re_init : bool
        If True, orthogonal initialization is used for the recurrent weights.

    Example
    -------
    >>> opts = RecurrentOptions(128, 64).layers(3).with_dropout(0.2)
    >>> opts.num_layers, opts.dropout
    (3, 0.2)
    """

    input_size: int
    hidden_size: int
    num_layers: int = 1
    dropout: float = 0.0
    nonlinearity: str = "tanh"
    bias: bool = True
    bidirectional: bool = False
    re_init: bool = False

    def layers(self, num_layers):
        return dataclasses.replace(self, num_layers=num_layers)

    def with_dropout(self, dropout):
        return dataclasses.replace(self, dropout=dropout)

    def relu(self):
        return dataclasses.replace(self, nonlinearity="relu")

    def tanh(self):
        return dataclasses.replace(self, nonlinearity="tanh")

    def validate(self):
        """Raises ConfigurationError on the first invalid option."""
        for name in ("input_size", "hidden_size", "num_layers"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise ConfigurationError(
                    f"{name} must be a positive integer, got {value!r}"
                )

        if isinstance(self.dropout, bool) or not isinstance(self.dropout, (int, float)):
            raise ConfigurationError(
                f"dropout must be a number in [0, 1), got {self.dropout!r}"
            )
        if not 0 <= self.dropout < 1:
            raise ConfigurationError(
                f"dropout must be in [0, 1), got {self.dropout}"
            )

        if self.nonlinearity not in NONLINEARITIES:
            raise ConfigurationError(
                f"Unknown nonlinearity {self.nonlinearity!r}, "
                f"expected one of {NONLINEARITIES}"
            )

        if self.bidirectional:
            raise ConfigurationError("bidirectional stacks are not supported")

        return self
