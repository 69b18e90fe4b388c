from setuptools import setup, find_packages

setup(
    name='rnn_stack',
    version="0.1.0",
    description="Multi-layer Elman RNN, GRU and LSTM stacks written with plain torch ops.",
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: Apache Software License",
    ],
    packages=find_packages(exclude=["tests"]),
    install_requires=[
        "torch",
    ],
    extras_require={
        "test": ["pytest"],
    },
    python_requires=">=3.8",
)
