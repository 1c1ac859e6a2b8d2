from stratagem_vision.workers.companion_worker import CompanionWorker
from stratagem_vision.workers.loadout_worker import LoadoutReadWorker
from stratagem_vision.workers.reload_worker import ReloadWorker

__all__ = ["CompanionWorker", "LoadoutReadWorker", "ReloadWorker"]
