import numpy as np
import os
import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt
from configs import REWARDS
from tetris_game import EMPTY

FEATURE_NAMES = [
    'aggregate_height',         # Sum of column heights
    'bumpiness',                # Sum of absolute differences between adjacent columns
    'holes',                    # Empty cells with filled cells above them
    'lines_cleared',            # Lines cleared so far this episode
    'piece_row',                # Row of the falling piece
    'pillar',                   # Longest filled run from the top of a column's stack
]

def calculate_state_features(board, piece=None, lines_cleared=0):
    """
    Calculate the features the agents and reward model read from the board.

    Args:
        board: The game Board
        piece: The falling Piece, or None between pieces
        lines_cleared: Lines cleared so far this episode

    Returns:
        Dictionary of calculated features
    """
    features = {}
    rows, cols = board.rows, board.cols

    # Column heights (empty column counts as 0)
    heights = board.column_heights()
    features['column_heights'] = heights
    features['aggregate_height'] = sum(heights)
    features['max_height'] = max(heights) if heights else 0

    # Bumpiness (sum of absolute differences between adjacent columns)
    bumpiness = 0
    for i in range(cols - 1):
        bumpiness += abs(heights[i] - heights[i + 1])
    features['bumpiness'] = bumpiness

    # Holes (empty cells with filled cells above them)
    holes = 0
    for col in range(cols):
        found_block = False
        for row in range(rows):
            if board.grid[row][col] != EMPTY:
                found_block = True
            elif found_block:
                holes += 1
    features['holes'] = holes

    # Pillar: unbroken run down from the top of each column's stack
    pillar = 0
    for col in range(cols):
        top = rows - heights[col]
        run = 0
        for row in range(top, rows):
            if board.grid[row][col] == EMPTY:
                break
            run += 1
        pillar = max(pillar, run)
    features['pillar'] = pillar

    features['lines_cleared'] = lines_cleared
    features['piece_row'] = piece.y if piece is not None else 0

    # Raw material for the tabular state key
    features['grid'] = board.occupancy()
    features['piece'] = ({'shape': piece.shape, 'x': piece.x, 'y': piece.y}
                         if piece is not None else None)

    return features

def feature_vector(features):
    """The six scalar features as a float32 array, in FEATURE_NAMES order"""
    return np.array([features[name] for name in FEATURE_NAMES], dtype=np.float32)

def calculate_reward(lines_cleared, features, is_game_over, score, best_score):
    """
    Reward for one lock, from the features seen before the lock.

    The thresholds are empirically tuned and kept as literal constants.

    Args:
        lines_cleared: Lines cleared by this lock
        features: Feature dictionary extracted before the lock
        is_game_over: Whether the lock filled the top row
        score: Episode score after the lock
        best_score: Best score seen so far in the run

    Returns:
        (reward, best_score) with best_score raised to score on a new best
    """
    total_height = features['aggregate_height']
    bumpiness = features['bumpiness']
    y_pos = features['piece_row']
    reward = 0.0

    if lines_cleared > 0:
        reward += lines_cleared * REWARDS['line_clear']

    # Holes cost less once the stack is high
    if total_height >= 140 or (total_height >= 110 and bumpiness >= 12):
        hole_penalty = REWARDS['hole_high_board']
    elif total_height >= 90 or (total_height >= 70 and bumpiness >= 9):
        hole_penalty = REWARDS['hole_mid_board']
    else:
        hole_penalty = REWARDS['hole_low_board']
    reward += features['holes'] * hole_penalty

    # Placement rule while the board is still low
    if total_height <= 40:
        if y_pos >= 12:
            reward -= (10 - y_pos) * 2
    elif total_height <= 100:
        if y_pos >= 12:
            reward -= 10 - y_pos

    reward += bumpiness * REWARDS['bumpiness']
    reward += features['pillar'] * REWARDS['pillar']

    if is_game_over:
        reward += REWARDS['game_over']

    if score > best_score:
        best_score = score
        reward += REWARDS['new_best']

    return reward, best_score

def calculate_basic_reward(lines_cleared, next_features, score, best_score):
    """Reward used by the first tabular demo, read from the board after the lock"""
    basic = REWARDS['basic']
    reward = 0.0

    if lines_cleared > 0:
        reward += lines_cleared * REWARDS['line_clear']

    max_height = next_features['max_height']
    reward += max_height * basic['height']
    if max_height < basic['low_board_height']:
        reward += basic['low_board_bonus']

    reward += next_features['holes'] * basic['hole']

    if score > best_score:
        best_score = score
        reward += REWARDS['new_best']

    return reward, best_score

def plot_training_progress(episodes, scores, avg_scores, rewards=None, filename=None):
    """
    Plot and save training progress metrics.

    Args:
        episodes: List of episode numbers
        scores: List of scores for each episode
        avg_scores: List of moving average scores
        rewards: List of total episode rewards (optional)
        filename: File path to save the plot (optional)
    """
    plt.figure(figsize=(12, 8))

    # Plot scores
    plt.subplot(2, 1, 1)
    plt.plot(episodes, scores, label='Score', alpha=0.6)
    plt.plot(episodes, avg_scores, label='Average Score', linewidth=2)
    plt.xlabel('Episode')
    plt.ylabel('Score')
    plt.title('Training Progress')
    plt.legend()
    plt.grid(True, alpha=0.3)

    # Plot rewards if available
    if rewards:
        plt.subplot(2, 1, 2)
        plt.plot(episodes, rewards, label='Reward', color='red')
        plt.xlabel('Episode')
        plt.ylabel('Reward')
        plt.title('Episode Reward')
        plt.grid(True, alpha=0.3)

    plt.tight_layout()

    # Save to file if filename provided
    if filename:
        os.makedirs(os.path.dirname(filename) if os.path.dirname(filename) else '.', exist_ok=True)
        plt.savefig(filename)

    plt.close()

def log_metrics(episode, score, reward, epsilon, phase, filename):
    """
    Append one episode's metrics to a CSV file.

    Args:
        episode: Episode number
        score: Score achieved in the episode
        reward: Total reward collected in the episode
        epsilon: Exploration rate at the end of the episode
        phase: Training phase name
        filename: File to log to
    """
    os.makedirs(os.path.dirname(filename) if os.path.dirname(filename) else '.', exist_ok=True)

    # Create file with header if it doesn't exist
    if not os.path.exists(filename):
        with open(filename, 'w') as f:
            f.write("episode,score,reward,epsilon,phase\n")

    with open(filename, 'a') as f:
        f.write(f"{episode},{score},{reward:.4f},{epsilon:.6f},{phase}\n")

def format_elapsed(time_elapsed):
    hours, remainder = divmod(time_elapsed, 3600)
    minutes, seconds = divmod(remainder, 60)
    return f"{int(hours):02d}:{int(minutes):02d}:{int(seconds):02d}"

def print_stats(episode, total_episodes, score, avg_score, reward, time_elapsed, epsilon=None, phase=None):
    """
    Print training statistics in a nicely formatted way.

    Args:
        episode: Current episode number
        total_episodes: Total number of episodes
        score: Score achieved in the episode
        avg_score: Moving average of scores
        reward: Total reward collected in the episode
        time_elapsed: Time elapsed since start of training
        epsilon: Current exploration rate (optional)
        phase: Current training phase (optional)
    """
    progress = f"[{episode}/{total_episodes}]"
    score_str = f"Score: {score} (Avg: {avg_score:.1f})"
    reward_str = f"Reward: {reward:.2f}"
    eps_str = f"Epsilon: {epsilon:.4f}" if epsilon is not None else ""
    phase_str = f"Phase: {phase.upper()}" if phase else ""

    print(f"Episode {progress} {score_str} {reward_str} {eps_str} {phase_str} Time: {format_elapsed(time_elapsed)}")
