"""
Value network for 2048 and its Model binding.

GameNetwork is a plain MLP from BoardState features to one Q-value per
direction. TorchModel pairs it with an Adam optimizer and implements the
Model capability the trainer works with.
"""

import copy
from pathlib import Path
from typing import List, Optional, Union

import torch
import torch.nn as nn
import torch.optim as optim
from torch import Tensor

from dqn.interfaces import Model
from training.board_state import BoardState


class GameNetwork(nn.Module):
    """MLP Q-network.

    - Input: (N, input_size) board features
    - Hidden layers: configurable sizes with ReLU activation
    - Output: (N, output_size) Q-values for each action
    """

    def __init__(
        self,
        input_size: int = BoardState.NUM_FEATURES,
        hidden_layers: Optional[List[int]] = None,
        output_size: int = BoardState.NUM_ACTIONS,
        activation: str = "relu",
    ):
        """Initialize network.

        Args:
            input_size: Length of a feature vector
            hidden_layers: Hidden layer sizes, [256, 256] by default
            output_size: Number of actions
            activation: Activation function ('relu' or 'tanh')
        """
        super().__init__()

        if hidden_layers is None:
            hidden_layers = [256, 256]

        self.input_size = input_size
        self.hidden_layers = list(hidden_layers)
        self.output_size = output_size
        self.activation = activation

        layers = []
        in_features = input_size

        for hidden_size in hidden_layers:
            layers.append(nn.Linear(in_features, hidden_size))
            if activation == "relu":
                layers.append(nn.ReLU())
            elif activation == "tanh":
                layers.append(nn.Tanh())
            else:
                raise ValueError(f"Unknown activation: {activation}")
            in_features = hidden_size

        # Output layer (no activation)
        layers.append(nn.Linear(in_features, output_size))

        self.network = nn.Sequential(*layers)

    def forward(self, features: Tensor) -> Tensor:
        if features.dtype != torch.float32:
            features = features.float()
        return self.network(features)


class TorchModel(Model):
    """GameNetwork with an Adam optimizer.

    Gradient steps clip the global gradient norm to MAX_GRAD_NORM.
    """

    MAX_GRAD_NORM = 10.0

    def __init__(
        self,
        network: Optional[GameNetwork] = None,
        learning_rate: float = 0.00025,
        device: torch.device = torch.device("cpu"),
    ):
        self.device = device
        self.network = (network if network is not None else GameNetwork()).to(device)
        self.optimizer = optim.Adam(self.network.parameters(), lr=learning_rate)

    def forward(self, features: Tensor) -> Tensor:
        return self.network(features.to(self.device))

    def clone(self) -> "TorchModel":
        """Independent copy of the weights.

        Clones serve as target networks and are never stepped, so the copy
        starts with a fresh optimizer instead of the online Adam moments.
        """
        return TorchModel(
            network=copy.deepcopy(self.network),
            learning_rate=self.optimizer.param_groups[0]["lr"],
            device=self.device,
        )

    def apply_gradient_step(self, loss: Tensor, learning_rate: float) -> "TorchModel":
        for group in self.optimizer.param_groups:
            group["lr"] = learning_rate

        self.optimizer.zero_grad()
        loss.backward()
        nn.utils.clip_grad_norm_(self.network.parameters(), max_norm=self.MAX_GRAD_NORM)
        self.optimizer.step()

        return self

    def save(self, path: Union[str, Path]) -> None:
        """Save weights, optimizer state and architecture.

        Args:
            path: Destination file
        """
        torch.save({
            "network_state_dict": self.network.state_dict(),
            "optimizer_state_dict": self.optimizer.state_dict(),
            "input_size": self.network.input_size,
            "hidden_layers": self.network.hidden_layers,
            "output_size": self.network.output_size,
        }, path)

    def load(self, path: Union[str, Path]) -> "TorchModel":
        """Load a checkpoint written by save().

        The network is rebuilt when the saved architecture differs from
        the current one.

        Args:
            path: Checkpoint file

        Returns:
            Model holding the loaded weights
        """
        checkpoint = torch.load(path, map_location=self.device)

        model = self
        if (
            checkpoint["input_size"] != self.network.input_size
            or list(checkpoint["hidden_layers"]) != self.network.hidden_layers
            or checkpoint["output_size"] != self.network.output_size
        ):
            model = TorchModel(
                network=GameNetwork(
                    input_size=checkpoint["input_size"],
                    hidden_layers=checkpoint["hidden_layers"],
                    output_size=checkpoint["output_size"],
                    activation=self.network.activation,
                ),
                learning_rate=self.optimizer.param_groups[0]["lr"],
                device=self.device,
            )

        model.network.load_state_dict(checkpoint["network_state_dict"])
        model.optimizer.load_state_dict(checkpoint["optimizer_state_dict"])
        return model
