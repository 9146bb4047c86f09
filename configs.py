# Configuration settings for the Tetris RL agents

# Game settings
GAME_CONFIG = {
    'rows': 20,                 # Board rows
    'cols': 10,                 # Board columns
}

# Fixed action set, in tie-break order
ACTIONS = ['left', 'right', 'rotate', 'drop', 'wait']

# Score bonus for clearing 0/1/2/3/4 lines in one lock
LINE_SCORES = [0, 40, 100, 300, 1200]

# Agent parameters, one entry per variant
AGENT_CONFIG = {
    'tabular': {
        'learning_rate': 0.1,       # Q-learning step size
        'gamma': 0.95,              # Discount factor
        'init_scale': 0.1,          # Unseen states get values in [0, init_scale)
        'key_length': 50,           # Board occupancy characters kept in the state key
        'buffer_size': 30000,       # Transition history size
    },
    'dqn': {
        'hidden_units': [32, 32],   # Width of each hidden layer
        'gamma': 0.999,             # Discount factor
        'batch_size': 128,          # Transitions replayed per learn call
        'buffer_size': 30000,       # Experience replay buffer size
        'target_update': 200,       # Sync target network every N stored transitions
        'step_scale': 0.01,         # Scale of the random weight nudge
        'init_range': 1.0,          # Weights start uniform in [-init_range, init_range)
    },
}

# Training run presets, one entry per variant
TRAINING_CONFIG = {
    'tabular': {
        'epsilon': 0.9,             # High exploration initially
        'epsilon_decay': 0.995,     # Decay rate for epsilon per episode
        'epsilon_min': 0.1,         # Minimum epsilon value
        'max_episodes': 100,        # Training episodes before demonstration
        'tick_ms': 200,             # Milliseconds between ticks
        'phases': False,            # No exploration/exploitation/genetic cycle
        'max_phase_games': 500,
        'exploitation_epsilon': 0.0001,
        'reward_model': 'advanced',
    },
    'dqn': {
        'epsilon': 0.3,
        'epsilon_decay': 0.9995,
        'epsilon_min': 0.0001,
        'max_episodes': 1000,
        'tick_ms': 100,
        'phases': True,
        'max_phase_games': 500,     # Games played before switching phase
        'exploitation_epsilon': 0.0001,
        'reward_model': 'advanced',
    },
}

# Phases of a training run
PHASES = ['exploration', 'exploitation', 'genetic']

# Reward shaping
REWARDS = {
    'line_clear': 10.0,             # Per cleared line
    'hole_high_board': -2.74,       # Reduced penalty per hole when the board is high
    'hole_mid_board': -4.74,
    'hole_low_board': -6.0,         # Standard penalty per hole
    'bumpiness': -0.5,              # Per unit of bumpiness
    'pillar': -0.3,                 # Per cell of the tallest pillar
    'game_over': -100.0,            # Penalty for game over
    'new_best': 50.0,               # Bonus for a new best score
    'basic': {                      # Reward used by the first tabular demo
        'height': -0.1,
        'low_board_bonus': 1.0,
        'low_board_height': 10,
        'hole': -2.0,
    },
}

# File paths
PATHS = {
    'logs_dir': 'logs/',
    'metrics': 'logs/metrics.csv',
    'plot': 'logs/training_progress.png',
}


def make_config(agent='dqn', **overrides):
    """
    Build a run configuration from the presets for one agent variant.

    Args:
        agent: Agent variant name ('tabular' or 'dqn')
        overrides: Keys replacing preset values

    Returns:
        Dictionary with game, training and agent settings merged
    """
    if agent not in TRAINING_CONFIG:
        raise ValueError(f"Unknown agent variant: {agent!r}")

    config = {'agent': agent, 'actions': list(ACTIONS), 'seed': None}
    config.update(GAME_CONFIG)
    config.update(TRAINING_CONFIG[agent])
    config.update(AGENT_CONFIG[agent])
    config.update(overrides)
    return config
