from .User import User
from .RefreshToken import RefreshToken
from .TokenBlocklist import TokenBlocklist

from .video import Video, Comment, WatchHistory, Playlist, PlaylistVideo
from .social import Subscription, Tweet, Like
from .AuditLog import AuditLog
