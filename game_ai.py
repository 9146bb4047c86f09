import numpy as np
import torch
import torch.nn as nn
import torch.nn.functional as F
import random
from configs import AGENT_CONFIG, ACTIONS
from helpers import FEATURE_NAMES, feature_vector

class TetrisNet(nn.Module):
    """Feed-forward value estimator: features in, one value per action out."""

    def __init__(self, input_size=len(FEATURE_NAMES), hidden_units=(32, 32), output_size=len(ACTIONS)):
        super(TetrisNet, self).__init__()

        self.fc1 = nn.Linear(input_size, hidden_units[0], bias=False)
        self.fc2 = nn.Linear(hidden_units[0], hidden_units[1], bias=False)
        self.fc3 = nn.Linear(hidden_units[1], output_size, bias=False)

    def forward(self, x):
        x = F.relu(self.fc1(x))
        x = F.relu(self.fc2(x))
        return self.fc3(x)

    @torch.no_grad()
    def randomize(self, init_range, generator=None):
        """Reset every weight uniformly in [-init_range, init_range)"""
        for param in self.parameters():
            param.copy_((torch.rand(param.shape, generator=generator) * 2 - 1) * init_range)

    @torch.no_grad()
    def predict(self, state):
        """Values for a single feature vector, as a numpy array"""
        x = torch.as_tensor(state, dtype=torch.float32).unsqueeze(0)
        return self(x)[0].numpy()

    @torch.no_grad()
    def nudge(self, state, action, target, step_scale, generator=None):
        """
        Move every weight by a random amount scaled by the TD error.

        This stands in for a gradient step; it is not backpropagation.
        """
        error = target - float(self.predict(state)[action])
        for param in self.parameters():
            param.add_((torch.rand(param.shape, generator=generator) - 0.5) * (error * step_scale))
        return error

class ExperienceBuffer:
    """Fixed-capacity FIFO of (state, action, reward, next_state, done) transitions"""

    def __init__(self, buffer_size):
        if buffer_size < 1:
            raise ValueError(f"buffer_size must be positive, got {buffer_size}")
        self.buffer_size = buffer_size
        self.clear()

    def clear(self):
        self.count = 0
        self.full = False

        self.states = [None] * self.buffer_size
        self.actions = np.zeros(self.buffer_size, dtype=np.int64)
        self.rewards = np.zeros(self.buffer_size, dtype=np.float32)
        self.next_states = [None] * self.buffer_size
        self.dones = np.zeros(self.buffer_size, dtype=bool)

    def add(self, state, action, reward, next_state, done):
        """Add an experience, overwriting the oldest one once full"""
        idx = self.count % self.buffer_size
        self.states[idx] = state
        self.actions[idx] = action
        self.rewards[idx] = reward
        self.next_states[idx] = next_state
        self.dones[idx] = done
        self.count += 1
        if self.count >= self.buffer_size:
            self.full = True

    def sample(self, batch_size, rng=None):
        """Sample a batch uniformly, with replacement"""
        rng = rng if rng is not None else np.random.default_rng()
        indices = rng.integers(0, len(self), size=batch_size)
        return [self._experience(idx) for idx in indices]

    def experiences(self):
        """All stored experiences, oldest first"""
        start = self.count % self.buffer_size if self.full else 0
        return [self._experience((start + i) % self.buffer_size) for i in range(len(self))]

    def _experience(self, idx):
        return (self.states[idx], int(self.actions[idx]), float(self.rewards[idx]),
                self.next_states[idx], bool(self.dones[idx]))

    def __len__(self):
        return self.buffer_size if self.full else self.count

class TetrisAgent:
    """
    Common interface of the agent variants.

    Callers only use select_action, learn, reset and
    start_genetic_optimization; they never check which variant they hold.
    """

    kind = None

    def __init__(self, config=None, seed=None):
        config = config or {}
        self.actions = list(config.get('actions', ACTIONS))
        if not self.actions:
            raise ValueError("Agent needs a non-empty action set")

        # Variant settings, overridable from the run config
        self.settings = dict(AGENT_CONFIG[self.kind])
        self.settings.update({key: config[key] for key in self.settings if key in config})

        self.rng = random.Random(seed)
        self.np_rng = np.random.default_rng(seed)
        self.genetic_optimization = False

    def q_values(self, features):
        raise NotImplementedError

    def select_action(self, features, epsilon):
        """Choose action using epsilon-greedy policy"""
        # Exploration: choose random action
        if self.rng.random() < epsilon:
            return self.rng.choice(self.actions)

        # Exploitation: first action with the highest value
        return self.actions[int(np.argmax(self.q_values(features)))]

    def learn(self, features, action, reward, next_features, done=False):
        raise NotImplementedError

    def reset(self):
        raise NotImplementedError

    def start_genetic_optimization(self):
        # Label only: no genetic algorithm runs behind this flag
        self.genetic_optimization = True

class QTableAgent(TetrisAgent):
    kind = 'tabular'

    def __init__(self, config=None, seed=None):
        super().__init__(config, seed)
        self.learning_rate = self.settings['learning_rate']
        self.gamma = self.settings['gamma']
        self.q_table = {}
        self.experience_buffer = ExperienceBuffer(self.settings['buffer_size'])

    def get_state_key(self, features):
        """Key built from the top of the board, the piece, max height and holes"""
        grid_key = "".join("".join(str(cell) for cell in row) for row in features['grid'])
        piece = features['piece']
        if piece is not None:
            shape_key = "".join("".join(str(cell) for cell in row) for row in piece['shape'])
            piece_key = f"{piece['x']},{piece['y']},{shape_key}"
        else:
            piece_key = "null"
        return f"{grid_key[:self.settings['key_length']]}_{piece_key}_{features['max_height']}_{features['holes']}"

    def _state_values(self, key):
        # Small random initial values for states seen for the first time
        if key not in self.q_table:
            scale = self.settings['init_scale']
            self.q_table[key] = [self.rng.random() * scale for _ in self.actions]
        return self.q_table[key]

    def q_values(self, features):
        return self._state_values(self.get_state_key(features))

    def select_action(self, features, epsilon):
        self._state_values(self.get_state_key(features))
        return super().select_action(features, epsilon)

    def learn(self, features, action, reward, next_features, done=False):
        state_key = self.get_state_key(features)
        next_state_key = self.get_state_key(next_features)
        action_index = self.actions.index(action)

        current_values = self._state_values(state_key)
        max_next_q = max(self._state_values(next_state_key))

        current_q = current_values[action_index]
        current_values[action_index] = current_q + self.learning_rate * (
            reward + self.gamma * max_next_q - current_q)

        self.experience_buffer.add(state_key, action_index, reward, next_state_key, done)

    def reset(self):
        self.q_table.clear()
        self.experience_buffer.clear()
        self.genetic_optimization = False

class DoubleDQNAgent(TetrisAgent):
    """
    Double-DQN style agent over the six scalar features.

    The replay buffer is sampled uniformly, and the update is a random weight
    perturbation scaled by the TD error rather than a gradient step.
    """

    kind = 'dqn'

    def __init__(self, config=None, seed=None):
        super().__init__(config, seed)
        self.gamma = self.settings['gamma']
        self.batch_size = self.settings['batch_size']
        self.target_update = self.settings['target_update']
        self.step_scale = self.settings['step_scale']

        self.generator = torch.Generator()
        if seed is not None:
            self.generator.manual_seed(seed)
        else:
            self.generator.seed()

        self._create_model()

    def _create_model(self):
        """Create the primary and target networks and an empty buffer"""
        hidden_units = self.settings['hidden_units']
        self.model = TetrisNet(len(FEATURE_NAMES), hidden_units, len(self.actions))
        self.model.randomize(self.settings['init_range'], self.generator)
        self.target_model = TetrisNet(len(FEATURE_NAMES), hidden_units, len(self.actions))
        self.update_target_model()

        self.experience_buffer = ExperienceBuffer(self.settings['buffer_size'])
        self.steps_since_update = 0

    def update_target_model(self):
        """Update the target model with current model weights"""
        self.target_model.load_state_dict(self.model.state_dict())

    def q_values(self, features):
        return self.model.predict(feature_vector(features))

    def learn(self, features, action, reward, next_features, done=False):
        """Store the transition, replay a batch, and sync the target periodically"""
        self.experience_buffer.add(feature_vector(features), self.actions.index(action),
                                   reward, feature_vector(next_features), done)

        if len(self.experience_buffer) >= self.batch_size:
            self.train_batch()

        self.steps_since_update += 1
        if self.steps_since_update >= self.target_update:
            self.update_target_model()
            self.steps_since_update = 0

    def train_batch(self):
        """Sample batch from experience buffer and nudge the primary model"""
        batch = self.experience_buffer.sample(self.batch_size, self.np_rng)
        errors = []

        for state, action, reward, next_state, done in batch:
            # Primary network picks the next action, target network values it
            best_next = int(np.argmax(self.model.predict(next_state)))
            target_q = float(self.target_model.predict(next_state)[best_next])
            target = reward + self.gamma * target_q * (0.0 if done else 1.0)

            errors.append(self.model.nudge(state, action, target, self.step_scale, self.generator))

        return float(np.mean(np.abs(errors)))

    def reset(self):
        self._create_model()
        self.genetic_optimization = False

AGENT_TYPES = {
    QTableAgent.kind: QTableAgent,
    DoubleDQNAgent.kind: DoubleDQNAgent,
}

def make_agent(kind, config=None, seed=None):
    """Build the agent variant named by kind ('tabular' or 'dqn')"""
    if kind not in AGENT_TYPES:
        raise ValueError(f"Unknown agent variant: {kind!r}")
    return AGENT_TYPES[kind](config, seed)
