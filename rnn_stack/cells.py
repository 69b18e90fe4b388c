""" Single time-step transitions for the recurrent stack.

Each recurrent kind is a ``CellStep`` strategy: the stack picks one at
construction and calls its ``step`` once per layer and time step. The input
projection ``gi = W_ih x_t + b_ih`` is computed by the caller for the whole
sequence beforehand, so a step only adds the recurrent part.

Gate layout follows torch.nn.RNN / GRU / LSTM so that their state dicts can
be loaded as-is.
"""
import torch
from torch import Tensor
from typing import Callable, NamedTuple, Optional, Tuple, Union

from rnn_stack.errors import ConfigurationError

State = Union[Tensor, Tuple[Tensor, Tensor]]


class CellStep(NamedTuple):
    mode: str
    gate_count: int
    has_cell_state: bool
    step: Callable[[Tensor, State, Tensor, Optional[Tensor]], State]


def _recurrent(h: Tensor, weight_hh: Tensor, bias_hh: Optional[Tensor]) -> Tensor:
    gh = h.matmul(weight_hh.t())
    if bias_hh is not None:
        gh = gh + bias_hh
    return gh


def rnn_tanh_step(gi, h, weight_hh, bias_hh=None):
    """Elman step with a tanh activation."""
    return torch.tanh(gi + _recurrent(h, weight_hh, bias_hh))


def rnn_relu_step(gi, h, weight_hh, bias_hh=None):
    """Elman step with a relu activation."""
    return torch.relu(gi + _recurrent(h, weight_hh, bias_hh))


def gru_step(gi, h, weight_hh, bias_hh=None):
    """GRU step.

    Arguments
    ---------
    gi : torch.Tensor
        Input projection for this step, (batch, 3 * hidden), ordered as
        reset, update, new.
    h : torch.Tensor
        Previous hidden state, (batch, hidden).
    weight_hh : torch.Tensor
        Recurrent weights, (3 * hidden, hidden).
    bias_hh : torch.Tensor
        Recurrent bias, (3 * hidden), or None.
    """
    gh = _recurrent(h, weight_hh, bias_hh)
    i_r, i_z, i_n = gi.chunk(3, dim=-1)
    h_r, h_z, h_n = gh.chunk(3, dim=-1)

    rt = torch.sigmoid(i_r + h_r)
    zt = torch.sigmoid(i_z + h_z)
    # the reset gate only scales the recurrent half of the candidate
    nt = torch.tanh(i_n + rt * h_n)
    return (1 - zt) * nt + zt * h


def lstm_step(gi, state, weight_hh, bias_hh=None):
    """LSTM step. ``state`` is the (h, c) pair; gates are ordered as
    input, forget, cell, output.
    """
    ht, ct = state
    gates = gi + _recurrent(ht, weight_hh, bias_hh)
    it, ft, gt, ot = gates.chunk(4, dim=-1)
    it = torch.sigmoid(it)
    ft = torch.sigmoid(ft)
    gt = torch.tanh(gt)
    ot = torch.sigmoid(ot)

    ct = ft * ct + it * gt
    ht = ot * torch.tanh(ct)
    return ht, ct


_CELLS = {
    "RNN_TANH": CellStep("RNN_TANH", 1, False, rnn_tanh_step),
    "RNN_RELU": CellStep("RNN_RELU", 1, False, rnn_relu_step),
    "GRU": CellStep("GRU", 3, False, gru_step),
    "LSTM": CellStep("LSTM", 4, True, lstm_step),
}

MODES = tuple(_CELLS)


def get_cell(mode: str) -> CellStep:
    """Returns the cell strategy registered for ``mode``."""
    try:
        return _CELLS[mode]
    except KeyError:
        raise ConfigurationError(
            f"Unknown recurrent mode {mode!r}, expected one of {MODES}"
        ) from None
