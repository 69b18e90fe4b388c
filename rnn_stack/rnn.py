""" This module implements multi-layer Elman RNN, GRU and LSTM stacks.

The stacks take time-major inputs formatted as (time, batch, fea) and scan
the time axis sequentially, layer after layer. Parameters are laid out as in
torch.nn.RNN / GRU / LSTM (unidirectional), so state dicts are
interchangeable.
"""
import logging
import math

import torch
import torch.nn as nn
import torch.nn.functional as F
from torch import Tensor
from typing import List, Optional, Tuple, Union

from rnn_stack.cells import get_cell
from rnn_stack.errors import ConfigurationError, ShapeMismatchError
from rnn_stack.options import RecurrentOptions

logger = logging.getLogger(__name__)

_RNN_MODES = {"tanh": "RNN_TANH", "relu": "RNN_RELU"}


class RecurrentStack(torch.nn.Module):
    """ Stack of recurrent layers sharing one cell strategy.

    Arguments
    ---------
    mode : str
        One of RNN_TANH, RNN_RELU, GRU, LSTM.
    input_size : int
        Feature dimensionality of the input tensors.
    hidden_size : int
        Number of output neurons (i.e, the dimensionality of the output).
    num_layers : int
        Number of layers to employ in the RNN architecture.
    bias : bool
        If True, the additive biases b_ih and b_hh are adopted.
    dropout : float
        Dropout applied to the output of every layer but the last, in
        training mode only (must be in [0, 1)).
    bidirectional : bool
        Only False is supported.
    re_init : bool
        If True, orthogonal initialization is used for the recurrent weights.
    device : torch.device
        Where the parameters are allocated.
    dtype : torch.dtype
        Floating point type of the parameters.

    Example
    -------
    >>> inp_tensor = torch.rand([10, 4, 20])
    >>> net = RecurrentStack("GRU", input_size=20, hidden_size=5)
    >>> out_tensor, h_n = net(inp_tensor)
    >>> out_tensor.shape, h_n.shape
    (torch.Size([10, 4, 5]), torch.Size([1, 4, 5]))
    """

    def __init__(
        self,
        mode,
        input_size,
        hidden_size,
        num_layers=1,
        bias=True,
        dropout=0.0,
        bidirectional=False,
        re_init=False,
        device=None,
        dtype=None,
    ):
        super().__init__()
        self.cell = get_cell(mode)
        self.options = RecurrentOptions(
            input_size=input_size,
            hidden_size=hidden_size,
            num_layers=num_layers,
            dropout=dropout,
            nonlinearity="relu" if mode == "RNN_RELU" else "tanh",
            bias=bias,
            bidirectional=bidirectional,
            re_init=re_init,
        ).validate()

        self.mode = mode
        self.input_size = input_size
        self.hidden_size = hidden_size
        self.num_layers = num_layers
        self.bias = bias
        self.dropout = float(dropout)
        self.re_init = re_init

        self.drop = torch.nn.Dropout(p=self.dropout, inplace=False)
        self._layer_names = self._init_layers(
            {"device": device, "dtype": dtype}
        )
        self.reset_parameters()

        logger.debug(
            "Built %s stack: %d layer(s), %d -> %d",
            mode, num_layers, input_size, hidden_size,
        )

    @classmethod
    def from_options(cls, options, mode="RNN", device=None, dtype=None):
        """Builds a stack from RecurrentOptions. The RNN mode resolves to
        RNN_TANH or RNN_RELU from ``options.nonlinearity``.
        """
        options.validate()
        if mode == "RNN":
            mode = _RNN_MODES[options.nonlinearity]
        return cls(
            mode,
            options.input_size,
            options.hidden_size,
            num_layers=options.num_layers,
            bias=options.bias,
            dropout=options.dropout,
            bidirectional=options.bidirectional,
            re_init=options.re_init,
            device=device,
            dtype=dtype,
        )

    def _init_layers(self, factory_kwargs):
        """Registers the parameters of every layer, in torch.nn.RNN order."""
        gate_size = self.cell.gate_count * self.hidden_size
        layer_names = []
        current_dim = self.input_size

        for k in range(self.num_layers):
            shapes = [
                ("weight_ih_l%d" % k, (gate_size, current_dim)),
                ("weight_hh_l%d" % k, (gate_size, self.hidden_size)),
            ]
            if self.bias:
                shapes.append(("bias_ih_l%d" % k, (gate_size,)))
                shapes.append(("bias_hh_l%d" % k, (gate_size,)))

            for name, shape in shapes:
                self.register_parameter(
                    name, nn.Parameter(torch.empty(shape, **factory_kwargs))
                )
            layer_names.append([name for name, _ in shapes])

            current_dim = self.hidden_size

        return layer_names

    def reset_parameters(self):
        stdv = 1.0 / math.sqrt(self.hidden_size)
        for weight in self.parameters():
            nn.init.uniform_(weight, -stdv, stdv)

        if self.re_init:
            rnn_init(self)

    @property
    def all_weights(self) -> List[List[nn.Parameter]]:
        return [
            [getattr(self, name) for name in names]
            for names in self._layer_names
        ]

    def _layer_params(self, k):
        params = self.all_weights[k]
        if self.bias:
            return tuple(params)
        return params[0], params[1], None, None

    def forward(
        self,
        x: Tensor,
        hx: Optional[Union[Tensor, Tuple[Tensor, Tensor]]] = None,
    ):
        """Returns the output of the stack and its final state.
        Arguments
        ---------
        x : torch.Tensor
            Input tensor, (time, batch, input_size).
        hx : torch.Tensor
            Starting state, (num_layers, batch, hidden_size). For LSTM either
            the (2, num_layers, batch, hidden_size) tensor returned by a
            previous call or a (h, c) pair.
        """
        self._check_input(x)
        states = self._init_state(x, hx)

        finals = []
        for k in range(self.num_layers):
            x, last = self._forward_layer(x, states[k], k)
            finals.append(last)
            if k < self.num_layers - 1:
                x = self.drop(x)

        return x, self._stack_state(finals)

    def _forward_layer(self, x, state, k):
        """Scans the time axis for layer k.
        Arguments
        ---------
        x : torch.Tensor
            Layer input, (time, batch, fea).
        state : torch.Tensor
            Layer starting state, (batch, hidden) or a (h, c) pair.
        """
        w_ih, w_hh, b_ih, b_hh = self._layer_params(k)

        # Feed-forward affine transformations (all steps in parallel)
        gi = F.linear(x, w_ih, b_ih)

        hiddens = []
        for t in range(gi.shape[0]):
            state = self.cell.step(gi[t], state, w_hh, b_hh)
            hiddens.append(state[0] if self.cell.has_cell_state else state)

        return torch.stack(hiddens, dim=0), state

    def _check_input(self, x):
        if not isinstance(x, Tensor):
            raise TypeError(f"input must be a torch.Tensor, got {type(x).__name__}")

        expected = ("T", "B", self.input_size)
        if x.dim() != 3 or x.size(2) != self.input_size or x.size(0) == 0:
            raise ShapeMismatchError("input", expected, x.shape)

    def _check_state(self, what, state, expected):
        if not isinstance(state, Tensor):
            raise TypeError(
                f"{what} must be a torch.Tensor, got {type(state).__name__}"
            )
        if tuple(state.shape) != expected:
            raise ShapeMismatchError(what, expected, state.shape)

    def _init_state(self, x, hx):
        """Splits the starting state per layer, zeros when none is given."""
        expected = (self.num_layers, x.size(1), self.hidden_size)

        if not self.cell.has_cell_state:
            if hx is None:
                hx = x.new_zeros(expected)
            self._check_state("hx", hx, expected)
            return list(hx.unbind(0))

        if hx is None:
            h0 = x.new_zeros(expected)
            c0 = x.new_zeros(expected)
        elif isinstance(hx, (tuple, list)):
            if len(hx) != 2:
                raise ShapeMismatchError("hx", (2,), (len(hx),))
            h0, c0 = hx
        else:
            self._check_state("hx", hx, (2,) + expected)
            h0, c0 = hx.unbind(0)

        self._check_state("hx[0]", h0, expected)
        self._check_state("hx[1]", c0, expected)
        return list(zip(h0.unbind(0), c0.unbind(0)))

    def _stack_state(self, finals):
        if self.cell.has_cell_state:
            h = torch.stack([ht for ht, _ in finals], dim=0)
            c = torch.stack([ct for _, ct in finals], dim=0)
            return torch.stack([h, c], dim=0)
        return torch.stack(finals, dim=0)

    def extra_repr(self):
        s = "{input_size}, {hidden_size}, mode={mode}"
        if self.num_layers != 1:
            s += ", num_layers={num_layers}"
        if self.bias is not True:
            s += ", bias={bias}"
        if self.dropout != 0:
            s += ", dropout={dropout}"
        return s.format(**self.__dict__)


class RNN(RecurrentStack):
    """ Elman RNN stack, h_t = act(W_ih x_t + b_ih + W_hh h_(t-1) + b_hh).

    Example
    -------
    >>> net = RNN(20, 5, num_layers=2, nonlinearity="relu")
    >>> out_tensor, h_n = net(torch.rand([10, 4, 20]))
    >>> h_n.shape
    torch.Size([2, 4, 5])
    """

    def __init__(self, input_size, hidden_size, num_layers=1, nonlinearity="tanh", **kwargs):
        if nonlinearity not in _RNN_MODES:
            raise ConfigurationError(
                f"Unknown nonlinearity {nonlinearity!r}, expected one of "
                f"{tuple(_RNN_MODES)}"
            )
        super().__init__(
            _RNN_MODES[nonlinearity], input_size, hidden_size, num_layers, **kwargs
        )
        self.nonlinearity = nonlinearity


class GRU(RecurrentStack):
    """ Gated Recurrent Units stack (reset, update and new gates)."""

    def __init__(self, input_size, hidden_size, num_layers=1, **kwargs):
        super().__init__("GRU", input_size, hidden_size, num_layers, **kwargs)


class LSTM(RecurrentStack):
    """ Long Short-Term Memory stack. The final state is returned as a
    single (2, num_layers, batch, hidden_size) tensor holding (h, c).

    Example
    -------
    >>> net = LSTM(128, 64, num_layers=3, dropout=0.2)
    >>> out_tensor, state = net(torch.randn([10, 16, 128]))
    >>> out_tensor.shape, state.shape
    (torch.Size([10, 16, 64]), torch.Size([2, 3, 16, 64]))
    """

    def __init__(self, input_size, hidden_size, num_layers=1, **kwargs):
        super().__init__("LSTM", input_size, hidden_size, num_layers, **kwargs)


def rnn_init(module):
    """This function is used to initialize the RNN weight.
    Recurrent connection: orthogonal initialization.

    Arguments
    ---------
    module: torch.nn.Module
        Recurrent neural network module.

    Example
    -------
    >>> net = GRU(20, 5)
    >>> rnn_init(net)
    """
    for name, param in module.named_parameters():
        if "weight_hh" in name:
            nn.init.orthogonal_(param)
