"""IRC command names, numeric replies and line parsing."""

from __future__ import annotations

from enum import Enum

SERVER_NAME = "mircd"


class Command(str, Enum):
    """Commands the daemon understands."""

    QUIT = "QUIT"
    NICK = "NICK"
    USER = "USER"
    PING = "PING"
    LIST = "LIST"
    JOIN = "JOIN"
    TOPIC = "TOPIC"
    NAMES = "NAMES"
    PART = "PART"
    USERS = "USERS"
    PRIVMSG = "PRIVMSG"


class Reply(str, Enum):
    """Numeric reply and error codes."""

    RPL_WELCOME = "001"
    RPL_SERVMSG = "251"
    RPL_LISTSTART = "321"
    RPL_LIST = "322"
    RPL_LISTEND = "323"
    RPL_NOTOPIC = "331"
    RPL_TOPIC = "332"
    RPL_NAMREPLY = "353"
    RPL_ENDOFNAMES = "366"
    RPL_MOTD = "372"
    RPL_MOTDSTART = "375"
    RPL_ENDOFMOTD = "376"
    RPL_USERSSTART = "392"
    RPL_USERS = "393"
    RPL_ENDOFUSERS = "394"

    ERR_NOSUCHNICK = "401"
    ERR_NOSUCHCHANNEL = "403"
    ERR_NOORIGIN = "409"
    ERR_NORECIPIENT = "411"
    ERR_NOTEXTTOSEND = "412"
    ERR_UNKNOWNCOMMAND = "421"
    ERR_NONICKNAMEGIVEN = "431"
    ERR_NICKCOLLISION = "436"
    ERR_NOTONCHANNEL = "442"
    ERR_NOTREGISTERED = "451"
    ERR_NEEDMOREPARAMS = "461"


def _rtrim(text: str) -> str:
    return text.rstrip(" \n\r")


def parse_arguments(line: str) -> list[str]:
    """Split a command line into its words.

    Words are separated by single spaces. A word starting with ':' is the
    last argument: it runs, spaces included, to the end of the line.
    Trailing spaces, CR and LF are trimmed from every word.
    """
    args: list[str] = []
    pos = 0
    length = len(line)
    while pos < length:
        end = line.find(" ", pos)
        if end == -1:
            token, pos = line[pos:], length
        else:
            token, pos = line[pos:end], end + 1
        if token.startswith(":"):
            if pos < length:
                newline = line.find("\n", pos)
                remainder = line[pos:] if newline == -1 else line[pos:newline]
                token = token[1:] + " " + remainder
            else:
                token = token[1:]
            args.append(_rtrim(token))
            return args
        args.append(_rtrim(token))
    return args


def format_reply(code: Reply | str, *args: str) -> str:
    """Build a server reply line: ``:mircd CODE ARGS...`` ended by CRLF."""
    value = code.value if isinstance(code, Reply) else str(code)
    return ":" + " ".join([SERVER_NAME, value, *args]) + "\r\n"