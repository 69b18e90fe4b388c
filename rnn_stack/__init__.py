from rnn_stack.errors import ConfigurationError, RecurrentError, ShapeMismatchError
from rnn_stack.options import RecurrentOptions
from rnn_stack.rnn import GRU, LSTM, RNN, RecurrentStack, rnn_init

__version__ = "0.1.0"
