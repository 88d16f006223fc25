"""
pongbot: a small Discord bot answering !ping, !echo and !help
(plus /ping and /echo slash commands).
"""

__version__ = "0.1.0"
