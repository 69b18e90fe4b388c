""" Running-sum calibration task for the recurrent stacks.

A model reads a short binary sequence and regresses the number of ones it
has seen. It is small enough to train in a few seconds and still needs the
hidden state to carry information across time steps, so a stack that does
not propagate state, or gradients through it, fails to converge.
"""
import logging

import torch
import torch.nn as nn
import torch.optim as optim
from torch import Tensor
from typing import Callable, Iterable, List, NamedTuple, Optional

logger = logging.getLogger(__name__)


class SequenceRegressor(nn.Module):
    """ Linear(1, H) -> tanh -> recurrent stack -> last step -> Linear(H, 1).

    Arguments
    ---------
    rnn : torch.nn.Module
        A recurrent stack taking (time, batch, hidden_size) inputs.
    hidden_size : int
        Width of the input projection and of the stack output.
    """

    def __init__(self, rnn, hidden_size):
        super().__init__()
        self.hidden_size = hidden_size
        self.input_layer = nn.Linear(1, hidden_size)
        self.rnn = rnn
        self.output_layer = nn.Linear(hidden_size, 1)

    def forward(self, x, hx=None):
        T, B = x.shape[0], x.shape[1]
        x = self.input_layer(x.reshape(T * B, 1))
        x = torch.tanh(x.reshape(T, B, self.hidden_size))

        if hx is None:
            output, _ = self.rnn(x)
        else:
            output, _ = self.rnn(x, hx)

        return self.output_layer(output[T - 1])


def generate_batch(seq_length=5, batch_size=16, device=None):
    """Returns binary sequences (time, batch, 1) and their sums (batch, 1)."""
    x = torch.rand(seq_length, batch_size, 1, device=device).round()
    y = x.sum(0)
    return x, y


class TrainingResult(NamedTuple):
    converged: bool
    epochs: int
    running_loss: float


def train_running_sum(
    make_rnn: Callable[[int], nn.Module],
    hidden_size: int = 32,
    lr: float = 1e-2,
    max_epoch: int = 1500,
    threshold: float = 1e-2,
    seq_length: int = 5,
    batch_size: int = 16,
    device=None,
) -> TrainingResult:
    """Trains ``make_rnn(hidden_size)`` on the running-sum task with Adam.

    The exponentially smoothed loss starts at 1 and is updated as
    ``0.99 * running_loss + 0.01 * loss``. Training stops as soon as it goes
    below ``threshold``, or unsuccessfully after ``max_epoch`` epochs.
    """
    net = SequenceRegressor(make_rnn(hidden_size), hidden_size).to(device)
    optimizer = optim.Adam(net.parameters(), lr=lr)
    mse_loss_fn = nn.MSELoss()

    net.train()
    running_loss = 1.0
    epoch = 0
    while running_loss > threshold:
        if epoch >= max_epoch:
            logger.info(
                "No convergence after %d epochs, running loss %.4f",
                max_epoch, running_loss,
            )
            return TrainingResult(False, epoch, running_loss)

        x, y = generate_batch(seq_length, batch_size, device=device)

        optimizer.zero_grad(set_to_none=True)
        y_pred = net(x)
        loss = mse_loss_fn(y_pred, y)
        loss.backward()
        optimizer.step()

        running_loss = running_loss * 0.99 + loss.item() * 0.01
        if epoch % 100 == 0:
            logger.debug("Epoch: %d Loss: %.6f Running: %.6f", epoch, loss.item(), running_loss)
        epoch += 1

    logger.info("Converged after %d epochs, running loss %.4f", epoch, running_loss)
    return TrainingResult(True, epoch, running_loss)


def apply_update(
    parameters: Iterable[Tensor],
    gradients: Iterable[Optional[Tensor]],
    lr: float,
) -> List[Tensor]:
    """Returns ``p - lr * g`` for every parameter, without touching the
    inputs. A None gradient leaves the parameter value unchanged.

    Example
    -------
    >>> apply_update([torch.ones(2)], [torch.ones(2)], lr=0.5)
    [tensor([0.5000, 0.5000])]
    """
    parameters = list(parameters)
    gradients = list(gradients)
    if len(parameters) != len(gradients):
        raise ValueError(
            f"Got {len(parameters)} parameters but {len(gradients)} gradients"
        )

    updated = []
    with torch.no_grad():
        for param, grad in zip(parameters, gradients):
            if grad is None:
                updated.append(param.detach().clone())
            else:
                updated.append(param.detach() - lr * grad)
    return updated
