#!/usr/bin/env python3

import argparse
import time
from configs import TRAINING_CONFIG, PATHS
from controller import EpisodeController, ThreadedTickSource
from training_utils import ensure_paths, training_loop, new_history, record_episode
from helpers import plot_training_progress

def run_realtime(config, log_file=None, plot_file=None):
    """Train on a fixed-period background timer, as a page host would"""
    controller = EpisodeController(config)
    source = ThreadedTickSource(controller.config['tick_ms'])
    controller.set_tick_source(source)

    total_episodes = controller.config['max_episodes']
    history = new_history()
    seen = 0
    start_time = time.time()

    print(f"Starting real-time training for {total_episodes} episodes "
          f"({controller.config['tick_ms']} ms per tick)...")
    controller.start_training()

    # Keep main thread alive, reporting finished episodes as they arrive
    try:
        while controller.run_state.training and source.error is None:
            time.sleep(0.1)
            summary = controller.last_episode
            if summary is not None and summary['episode'] != seen:
                seen = summary['episode']
                record_episode(history, summary, total_episodes, start_time, log_file)
    except KeyboardInterrupt:
        print("\nTraining interrupted.")
    finally:
        controller.pause()
        source.stop()

    print(f"Best score achieved: {controller.run_state.best_score}")
    if plot_file and history['episodes']:
        plot_training_progress(history['episodes'], history['scores'],
                               history['avg_scores'], history['rewards'], plot_file)
    return controller, history

def main():
    # Parse command line arguments
    parser = argparse.ArgumentParser(description='Tetris RL agents')

    parser.add_argument('--agent', choices=sorted(TRAINING_CONFIG), default='dqn',
                        help='Agent variant to train (default: dqn)')

    parser.add_argument('--episodes', type=int, default=None,
                        help='Number of training episodes (default: the agent preset)')

    parser.add_argument('--epsilon', type=float, default=None,
                        help='Initial exploration rate (default: the agent preset)')

    parser.add_argument('--reward-model', choices=['advanced', 'basic'], default=None,
                        help='Reward shaping to train with (default: advanced)')

    parser.add_argument('--seed', type=int, default=None,
                        help='Random seed for pieces and agent')

    parser.add_argument('--realtime', action='store_true',
                        help='Tick on a background timer instead of as fast as possible')

    parser.add_argument('--log-file', type=str, default=PATHS['metrics'],
                        help=f'CSV metrics file (default: {PATHS["metrics"]})')

    parser.add_argument('--plot-file', type=str, default=PATHS['plot'],
                        help=f'Progress plot image (default: {PATHS["plot"]})')

    args = parser.parse_args()

    config = {'agent': args.agent, 'seed': args.seed}
    if args.episodes is not None:
        config['max_episodes'] = args.episodes
    if args.epsilon is not None:
        config['epsilon'] = args.epsilon
        print(f"Set exploration rate (epsilon) to {args.epsilon}")
    if args.reward_model is not None:
        config['reward_model'] = args.reward_model

    # Ensure directories exist
    ensure_paths()

    if args.realtime:
        run_realtime(config, args.log_file, args.plot_file)
    else:
        print(f"Training {args.agent} agent...")
        training_loop(config, log_file=args.log_file, plot_file=args.plot_file)

if __name__ == "__main__":
    main()
