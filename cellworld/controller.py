"""
Environment controller: the policy side of population extinction.

The registry only announces extinction. This controller subscribes and
applies the world config: auto_pause stops the clock, otherwise
auto_reset bumps reset_count and reseeds the world.
"""

from loguru import logger


class EnvironmentController:
    """Extinction policy and pause/resume for one SimulationClock"""

    def __init__(self, clock):
        self.clock = clock
        self.world = clock.world
        self.extinctions = 0
        self.world.registry.subscribe_extinction(self.on_extinction)

    def on_extinction(self):
        self.extinctions += 1
        config = self.world.config
        if config.auto_pause:
            logger.info(f"Auto-pause after extinction at tick {self.world.total_ticks}")
            self.pause()
        elif config.auto_reset:
            self.world.reset_count += 1
            logger.info(f"Auto-reset #{self.world.reset_count} after extinction at tick {self.world.total_ticks}")
            self.clock.request_reset()

    def pause(self):
        self.clock.paused = True

    def resume(self):
        self.clock.paused = False

    def detach(self):
        self.world.registry.unsubscribe_extinction(self.on_extinction)
