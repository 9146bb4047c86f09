import os
import time
import numpy as np
from configs import PATHS
from controller import EpisodeController
from helpers import log_metrics, plot_training_progress, print_stats

def ensure_paths():
    """Ensure all required directories exist"""
    for path in PATHS.values():
        if path.endswith('/'):  # It's a directory
            os.makedirs(path, exist_ok=True)
        else:  # It's a file
            directory = os.path.dirname(path)
            if directory:
                os.makedirs(directory, exist_ok=True)

def record_episode(history, summary, total_episodes, start_time, log_file=None, verbose=True):
    """Append one finished episode to the history and report it"""
    history['episodes'].append(summary['episode'])
    history['scores'].append(summary['score'])
    history['rewards'].append(summary['reward'])
    history['lines'].append(summary['lines_cleared'])
    history['epsilons'].append(summary['epsilon'])
    history['avg_scores'].append(float(np.mean(history['scores'][-100:])))

    if verbose:
        print_stats(summary['episode'], total_episodes, summary['score'],
                    history['avg_scores'][-1], summary['reward'],
                    time.time() - start_time, summary['epsilon'], summary['phase'])

    if log_file:
        log_metrics(summary['episode'], summary['score'], summary['reward'],
                    summary['epsilon'], summary['phase'], log_file)

def new_history():
    return {
        'episodes': [],
        'scores': [],
        'avg_scores': [],
        'rewards': [],
        'lines': [],
        'epsilons': [],
    }

def training_loop(config=None, episodes=None, log_file=None, plot_file=None, max_ticks=None, verbose=True):
    """
    Train headless by stepping ticks synchronously until the run finishes.

    Args:
        config: Run configuration overrides (see configs.make_config)
        episodes: Number of training episodes (defaults to the preset)
        log_file: CSV file for per-episode metrics (optional)
        plot_file: Image file for the progress plot (optional)
        max_ticks: Stop after this many ticks even if training is unfinished
        verbose: Print a line per episode

    Returns:
        (controller, history) where history holds per-episode lists
    """
    config = dict(config or {})
    if episodes is not None:
        config['max_episodes'] = episodes

    controller = EpisodeController(config)
    total_episodes = controller.config['max_episodes']
    history = new_history()
    start_time = time.time()
    ticks = 0

    controller.start_training()
    while controller.run_state.training:
        if max_ticks is not None and ticks >= max_ticks:
            break
        outcome = controller.tick_source.step()[0]
        ticks += 1
        if outcome.episode_ended:
            record_episode(history, controller.last_episode, total_episodes,
                           start_time, log_file, verbose)

    if verbose:
        print(f"Training complete! Best score achieved: {controller.run_state.best_score}")

    if plot_file and history['episodes']:
        plot_training_progress(history['episodes'], history['scores'],
                               history['avg_scores'], history['rewards'], plot_file)

    return controller, history
