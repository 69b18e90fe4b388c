import pytest
import torch

from rnn_stack import RecurrentStack
from rnn_stack.cells import MODES


B, T, H, F = 3, 4, 5, 6


@pytest.mark.parametrize("mode", MODES)
def test_gradcheck(mode):
    net = RecurrentStack(mode, F, H, num_layers=2, dtype=torch.double)
    x = torch.randn(T, B, F, dtype=torch.double, requires_grad=True)

    assert torch.autograd.gradcheck(lambda inp: net(inp)[0], [x])


@pytest.mark.parametrize("mode", MODES)
def test_gradient_reaches_every_parameter(mode, device):
    net = RecurrentStack(mode, F, H, num_layers=2).to(device)
    x = torch.randn(T, B, F, device=device, requires_grad=True)

    out, state = net(x)
    (out.sum() + state.sum()).backward()

    assert x.grad is not None and x.grad.shape == x.shape
    for name, param in net.named_parameters():
        assert param.grad is not None, name
        assert param.grad.abs().sum().item() > 0, name


def test_gradient_flows_through_initial_state():
    net = RecurrentStack("LSTM", F, H, num_layers=2)
    state = torch.randn(2, 2, B, H, requires_grad=True)

    out, _ = net(torch.randn(T, B, F), state)
    out[-1].sum().backward()

    assert state.grad.abs().sum().item() > 0
