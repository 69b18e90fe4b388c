import pytest
import torch

from rnn_stack import GRU, LSTM, RNN
from rnn_stack.training import SequenceRegressor, apply_update, generate_batch, train_running_sum


MAKERS = {
    "lstm": lambda s: LSTM(s, s, num_layers=2),
    "gru": lambda s: GRU(s, s, num_layers=2),
    "rnn_relu": lambda s: RNN(s, s, num_layers=2, nonlinearity="relu"),
    "rnn_tanh": lambda s: RNN(s, s, num_layers=2, nonlinearity="tanh"),
}


@pytest.mark.slow
@pytest.mark.parametrize("kind", sorted(MAKERS))
def test_running_sum_converges(kind, device):
    result = train_running_sum(MAKERS[kind], device=device)

    assert result.converged, result
    assert result.epochs <= 1500
    assert result.running_loss <= 1e-2


def test_gives_up_after_max_epoch():
    result = train_running_sum(MAKERS["gru"], hidden_size=4, max_epoch=3)

    assert not result.converged
    assert result.epochs == 3


def test_trains_at_most_max_epoch_batches():
    calls = []

    def make_rnn(s):
        rnn = GRU(s, s)
        rnn.register_forward_hook(lambda module, inp, out: calls.append(1))
        return rnn

    result = train_running_sum(make_rnn, hidden_size=4, max_epoch=3)

    assert not result.converged
    assert len(calls) == 3


def test_generate_batch():
    x, y = generate_batch(seq_length=5, batch_size=16)

    assert x.shape == (5, 16, 1)
    assert y.shape == (16, 1)
    assert set(x.unique().tolist()) <= {0.0, 1.0}
    assert torch.equal(y, x.sum(0))


def test_regressor_accepts_initial_state():
    net = SequenceRegressor(LSTM(8, 8, num_layers=2), hidden_size=8)
    x, _ = generate_batch(seq_length=5, batch_size=3)

    assert net(x).shape == (3, 1)
    assert net(x, torch.zeros(2, 2, 3, 8)).shape == (3, 1)


def test_apply_update_is_pure():
    params = [torch.ones(3, requires_grad=True), torch.full((2,), 2.0)]
    grads = [torch.tensor([1.0, 2.0, 3.0]), None]

    updated = apply_update(params, grads, lr=0.1)

    assert torch.allclose(updated[0], torch.tensor([0.9, 0.8, 0.7]))
    assert torch.equal(updated[1], params[1])
    assert updated[1] is not params[1]
    # inputs untouched
    assert torch.equal(params[0], torch.ones(3))
    assert not updated[0].requires_grad


def test_apply_update_reduces_loss():
    net = RNN(4, 6)
    x = torch.randn(5, 2, 4)

    out, _ = net(x)
    loss = out.pow(2).sum()
    loss.backward()

    params = list(net.parameters())
    updated = apply_update(params, [p.grad for p in params], lr=1e-2)
    with torch.no_grad():
        for param, value in zip(params, updated):
            param.copy_(value)

    new_out, _ = net(x)
    assert new_out.pow(2).sum().item() < loss.item()


def test_apply_update_length_mismatch():
    with pytest.raises(ValueError):
        apply_update([torch.ones(1)], [], lr=0.1)
