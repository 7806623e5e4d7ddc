from .session import ChatSession, SessionState, Backoff
from .scrollback import Scrollback
from .interaction import Interaction, Mode, KeyPress
from .events import Credential, ChatLine
from .irc import normalize_channel

__version__ = '0.1.0'
