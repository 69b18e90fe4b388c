import time

import torch

from rnn_stack import RecurrentStack
from rnn_stack.cells import MODES

seq_length, batch_size, hidden_size, input_size, n_layers = 100, 16, 256, 128, 2
device = torch.device("cuda" if torch.cuda.is_available() else "cpu")

_REFERENCE = {
    "RNN_TANH": lambda: torch.nn.RNN(input_size, hidden_size, n_layers, nonlinearity="tanh"),
    "RNN_RELU": lambda: torch.nn.RNN(input_size, hidden_size, n_layers, nonlinearity="relu"),
    "GRU": lambda: torch.nn.GRU(input_size, hidden_size, n_layers),
    "LSTM": lambda: torch.nn.LSTM(input_size, hidden_size, n_layers),
}


def _synchronize():
    if device.type == "cuda":
        torch.cuda.synchronize()


def warmup(fct, *kargs, n_iters=2):
    """Runs a few forward and backward passes before timing."""
    for _ in range(n_iters):
        out, _ = fct(*kargs)
        out.sum().backward()


def benchmark(fct, *kargs, n_iters=5):
    """Evaluates an input function over n iterations."""
    avg_time = 0

    _synchronize()
    for _ in range(n_iters):

        _synchronize()
        time1 = time.time()
        out, _ = fct(*kargs)
        out.sum().backward()
        _synchronize()
        avg_time += time.time() - time1

    return avg_time / n_iters


if __name__ == "__main__":
    inp_tensor = torch.rand([seq_length, batch_size, input_size], device=device)

    for mode in MODES:
        torch.manual_seed(42)
        ref = _REFERENCE[mode]().to(device)
        net = RecurrentStack(mode, input_size, hidden_size, num_layers=n_layers).to(device)
        net.load_state_dict(ref.state_dict())

        warmup(net, inp_tensor, n_iters=3)
        warmup(ref, inp_tensor, n_iters=3)
        print(f"{mode:<9} rnn_stack: {benchmark(net, inp_tensor, n_iters=10):.4f}s "
              f"torch.nn: {benchmark(ref, inp_tensor, n_iters=10):.4f}s")
