import pytest
import torch


def pytest_configure(config):
    config.addinivalue_line("markers", "cuda: tests that need a CUDA device")
    config.addinivalue_line("markers", "slow: convergence tests training a model")


@pytest.fixture(autouse=True)
def seed():
    torch.manual_seed(42)


devices = [
    pytest.param("cpu", id="cpu"),
    pytest.param(
        "cuda",
        id="cuda",
        marks=[
            pytest.mark.cuda,
            pytest.mark.skipif(not torch.cuda.is_available(), reason="CUDA not available"),
        ],
    ),
]


@pytest.fixture(params=devices)
def device(request):
    return torch.device(request.param)
