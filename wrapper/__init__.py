"""
RCON Wrapper - supervisor for a game server with a WebRcon console
"""

from .activity import ActivityClock
from .context import ExitReason, SupervisorContext
from .dedup import ProgressDeduplicator, SeenProgressSet
from .log_sink import LogSink
from .process import ConsoleRelay, ServerProcess
from .rcon import RconSessionManager, RemoteSession, SessionEvent, SessionState
from .router import CommandRoute, CommandRouter
from .supervisor import GameServerSupervisor
from .watchdog import LivenessWatchdog

__all__ = [
    'ActivityClock',
    'CommandRoute',
    'CommandRouter',
    'ConsoleRelay',
    'ExitReason',
    'GameServerSupervisor',
    'LivenessWatchdog',
    'LogSink',
    'ProgressDeduplicator',
    'RconSessionManager',
    'RemoteSession',
    'SeenProgressSet',
    'ServerProcess',
    'SessionEvent',
    'SessionState',
    'SupervisorContext',
]
