import torch

from rnn_stack import GRU
from rnn_stack.cells import gru_step


T, B, H, F = 7, 4, 10, 6


def test_sizes(device):
    net = GRU(F, H, num_layers=3).to(device)
    out, h_n = net(torch.rand(T, B, F, device=device))

    assert out.shape == (T, B, H)
    assert h_n.shape == (3, B, H)
    assert h_n.norm().item() > 0


def test_matches_torch_gru():
    ref = torch.nn.GRU(F, H, num_layers=2)
    net = GRU(F, H, num_layers=2)
    net.load_state_dict(ref.state_dict())

    x = torch.randn(T, B, F)
    h0 = torch.randn(2, B, H)

    out_ref, h_ref = ref(x, h0)
    out, h_n = net(x, h0)

    assert torch.allclose(out, out_ref, atol=1e-5)
    assert torch.allclose(h_n, h_ref, atol=1e-5)


def test_gru_step_closed_update_gate_keeps_state():
    h = torch.randn(B, H)
    # a large update gate pre-activation makes z = 1, so h' = h
    gi = torch.zeros(B, 3 * H)
    gi[:, H:2 * H] = 100.0
    weight_hh = torch.zeros(3 * H, H)

    assert torch.allclose(gru_step(gi, h, weight_hh), h)


def test_chained_state_changes():
    net = GRU(F, H, num_layers=2)
    x = torch.rand(T, B, F)

    _, h_1 = net(x)
    _, h_2 = net(x, h_1)

    assert (h_2 - h_1).detach().abs().sum().item() > 1e-3
