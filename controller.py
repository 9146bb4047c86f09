import random
import threading
from collections import namedtuple
from configs import make_config, PHASES
from tetris_game import Board, random_piece, spawn_piece, apply_action, line_score
from helpers import calculate_state_features, calculate_reward, calculate_basic_reward
from game_ai import make_agent

# Controller states
IDLE = "idle"
SPAWNING = "spawning"
FALLING = "falling"
LOCKING = "locking"
CLEARING = "clearing"
GAME_OVER = "game_over"

REWARD_MODELS = ("advanced", "basic")

TickOutcome = namedtuple("TickOutcome", [
    "board",            # Grid snapshot after the tick
    "piece",            # Falling piece snapshot, or None
    "reward",           # Reward earned this tick
    "lines_cleared",    # Lines cleared this tick
    "episode_ended",    # Whether the episode ended this tick
    "score",
    "episode",
    "epsilon",
    "phase",
    "status",
])

#################################################
# Training run state
#################################################

class TrainingRunState:
    """Episode counter, exploration rate, phase and best score of one run"""

    def __init__(self, config):
        self.config = config
        self.reset()

    def reset(self):
        self.episodes = 0
        self.epsilon = self.config['epsilon']
        self.phase = PHASES[0]
        self.phase_games = 0
        self.best_score = 0
        self.progress = 0.0
        self.training = False
        self.demonstration = False
        self.status_message = "Ready to start learning..."

    def start(self):
        self.reset()
        self.training = True

    def decay_epsilon(self):
        self.epsilon = max(self.config['epsilon_min'], self.epsilon * self.config['epsilon_decay'])

    def update_progress(self):
        self.progress = min(100.0, self.episodes / self.config['max_episodes'] * 100)

#################################################
# Tick sources
#################################################

class TickSource:
    """Fires the bound callback; start/stop control whether ticks happen"""

    def __init__(self):
        self.callback = None

    def bind(self, callback):
        self.callback = callback

    def start(self):
        raise NotImplementedError

    def stop(self):
        raise NotImplementedError

class ManualTickSource(TickSource):
    """Ticks only when step() is called, so hosts and tests drive time"""

    def __init__(self):
        super().__init__()
        self.running = False

    def start(self):
        self.running = True

    def stop(self):
        self.running = False

    def step(self, n=1):
        """Fire n ticks synchronously and return their outcomes"""
        outcomes = []
        for _ in range(n):
            if not self.running:
                break
            outcomes.append(self.callback())
        return outcomes

class ThreadedTickSource(TickSource):
    """Fires the callback every period_ms from one background thread"""

    def __init__(self, period_ms):
        super().__init__()
        self.period = period_ms / 1000
        self.error = None
        self._thread = None
        self._stop_event = None

    @property
    def running(self):
        return (self._thread is not None and self._thread.is_alive()
                and not self._stop_event.is_set())

    def start(self):
        if self.running:
            return
        # A fresh event per run, so a stopped thread can never pick up again
        self._stop_event = threading.Event()
        self._thread = threading.Thread(target=self._run, args=(self._stop_event,))
        self._thread.daemon = True
        self._thread.start()

    def _run(self, stop_event):
        while not stop_event.wait(self.period):
            try:
                self.callback()
            except Exception as e:
                self.error = e
                print(f"Tick error: {e}")
                stop_event.set()

    def stop(self):
        """Stop scheduling ticks; a tick already running completes first"""
        if self._stop_event is not None:
            self._stop_event.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout=max(1.0, 10 * self.period))
        self._thread = None

#################################################
# Episode controller
#################################################

class EpisodeController:
    def __init__(self, config=None, tick_source=None, run_state=None):
        config = dict(config or {})
        agent = config.pop('agent', 'dqn')
        self.config = make_config(agent, **config)

        if self.config['reward_model'] not in REWARD_MODELS:
            raise ValueError(f"Unknown reward model: {self.config['reward_model']!r}")
        if not self.config['actions']:
            raise ValueError("Action set must not be empty")

        seed = self.config['seed']
        self.rng = random.Random(seed)
        self.board = Board(self.config['rows'], self.config['cols'])
        self.agent = make_agent(agent, self.config, seed)
        self.run_state = run_state if run_state is not None else TrainingRunState(self.config)

        self.set_tick_source(tick_source if tick_source is not None else ManualTickSource())

        self.is_running = False
        self.is_paused = False
        self.state = IDLE
        self.last_episode = None
        self.last_outcome = None
        self._reset_episode()

    def _reset_episode(self):
        self.board.clear()
        self.current_piece = None
        self.next_piece = None
        self.score = 0
        self.lines_cleared = 0
        self.episode_reward = 0.0

    def set_tick_source(self, tick_source):
        self.tick_source = tick_source
        self.tick_source.bind(self.tick)

    def set_status(self, message):
        self.run_state.status_message = message

    #################################################
    # Run lifecycle
    #################################################

    def start_training(self):
        if self.is_running:
            return
        self.is_running = True
        self.is_paused = False
        self.run_state.start()
        self.start_episode()
        self.tick_source.start()

    def start_episode(self):
        run = self.run_state
        run.episodes += 1
        run.phase_games += 1
        self._reset_episode()
        self.state = SPAWNING
        self.spawn()

        self.update_training_phase()

        if run.demonstration:
            self.set_status(f"Demonstration Mode - Episode {run.episodes}")
        elif self.config['phases']:
            self.set_status(f"{run.phase.upper()} Phase - Episode {run.episodes}/"
                            f"{self.config['max_episodes']} - Epsilon: {run.epsilon:.4f}")
        else:
            self.set_status(f"Training Episode {run.episodes}/{self.config['max_episodes']}"
                            f" - Epsilon: {run.epsilon:.3f}")

    def update_training_phase(self):
        run = self.run_state
        if not self.config['phases'] or run.demonstration:
            return
        if run.phase_games >= self.config['max_phase_games']:
            run.phase_games = 0
            if run.phase == "exploration":
                run.phase = "exploitation"
                run.epsilon = self.config['exploitation_epsilon']
                self.set_status("Switching to EXPLOITATION phase - Testing learned strategies...")
            elif run.phase == "exploitation":
                run.phase = "genetic"
                self.set_status("Switching to GENETIC ALGORITHM phase - Optimizing reward function...")
                self.agent.start_genetic_optimization()

    def end_episode(self):
        run = self.run_state
        self.state = GAME_OVER
        run.update_progress()

        # Decay epsilon for less exploration over time
        if not run.demonstration:
            run.decay_epsilon()

        self.last_episode = {
            'episode': run.episodes,
            'score': self.score,
            'lines_cleared': self.lines_cleared,
            'reward': self.episode_reward,
            'epsilon': run.epsilon,
            'phase': run.phase,
        }
        self.set_status(f"Episode {run.episodes} Complete! Score: {self.score}, "
                        f"Best: {run.best_score}, Phase: {run.phase.upper()}")

        if run.training and run.episodes >= self.config['max_episodes']:
            self.finish_training()

    def finish_training(self):
        run = self.run_state
        run.training = False
        run.demonstration = True
        run.epsilon = 0
        self.set_status(f"Training Complete! Final Score: {self.score}, Best Score: "
                        f"{run.best_score}. Demonstration Mode: watch the trained agent play!")

    def pause(self):
        if self.is_running and not self.is_paused:
            self.is_paused = True
            self.tick_source.stop()

    def resume(self):
        if self.is_running and self.is_paused:
            self.is_paused = False
            self.tick_source.start()

    def toggle_pause(self):
        if self.is_paused:
            self.resume()
        else:
            self.pause()

    def reset_agent(self):
        self.agent.reset()

    def reset_training(self):
        self.is_running = False
        self.is_paused = False
        self.tick_source.stop()
        self._reset_episode()
        self.state = IDLE
        self.last_episode = None
        self.run_state.reset()
        self.agent.reset()
        self.set_status("Training reset. Ready to start learning...")

    #################################################
    # Game loop
    #################################################

    def spawn(self):
        """Bring in the next piece; the game is over if it cannot be placed"""
        self.state = SPAWNING
        if self.next_piece is None:
            self.next_piece = random_piece(self.rng)
        self.current_piece = spawn_piece(self.board, self.next_piece)
        self.next_piece = random_piece(self.rng)

        if self.board.collides(self.current_piece):
            self.end_episode()
        else:
            self.state = FALLING

    def features(self):
        return calculate_state_features(self.board, self.current_piece, self.lines_cleared)

    def tick(self):
        """Run one decision/physics step and report what changed"""
        if not self.is_running or self.is_paused or self.state == IDLE:
            return self.outcome()

        # Previous tick ended an episode; this tick sets up the next one
        if self.state == GAME_OVER:
            self.start_episode()
            return self.outcome(episode_ended=self.state == GAME_OVER)

        state = self.features()
        action = self.agent.select_action(state, self.run_state.epsilon)
        apply_action(self.board, self.current_piece, action)

        reward = 0.0
        cleared = 0
        piece = self.current_piece
        piece.y += 1
        if self.board.collides(piece):
            piece.y -= 1
            self.state = LOCKING
            self.board.lock(piece)

            self.state = CLEARING
            cleared = self.board.clear_full_rows()
            if cleared:
                self.score += line_score(cleared)
                self.lines_cleared += cleared

            game_over = self.board.is_top_row_occupied()
            next_state = self.features()
            reward = self.calculate_reward(cleared, state, next_state, game_over)
            self.episode_reward += reward

            self.agent.learn(state, action, reward, next_state, done=game_over)

            self.spawn()

        if self.state != GAME_OVER and self.board.is_top_row_occupied():
            self.end_episode()

        return self.outcome(reward, cleared, self.state == GAME_OVER)

    def calculate_reward(self, cleared, state, next_state, game_over):
        run = self.run_state
        if self.config['reward_model'] == "basic":
            reward, run.best_score = calculate_basic_reward(cleared, next_state, self.score, run.best_score)
        else:
            reward, run.best_score = calculate_reward(cleared, state, game_over, self.score, run.best_score)
        return reward

    def outcome(self, reward=0.0, lines_cleared=0, episode_ended=False):
        self.last_outcome = TickOutcome(
            board=self.board.snapshot(),
            piece=self.current_piece.snapshot() if self.current_piece is not None else None,
            reward=reward,
            lines_cleared=lines_cleared,
            episode_ended=episode_ended,
            score=self.score,
            episode=self.run_state.episodes,
            epsilon=self.run_state.epsilon,
            phase=self.run_state.phase,
            status=self.run_state.status_message,
        )
        return self.last_outcome

#################################################
# Host interface
#################################################

def new_episode(config=None, tick_source=None):
    """Build a controller for config and start its training run"""
    handle = EpisodeController(config, tick_source)
    handle.start_training()
    return handle

def tick(handle):
    return handle.tick()

def pause(handle):
    handle.pause()

def resume(handle):
    handle.resume()

def reset_agent(handle):
    handle.reset_agent()

def reset_training(handle):
    handle.reset_training()
