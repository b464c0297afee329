"""In-memory state of the IRC daemon and the command handlers."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from inpkit.ircd.protocol import Command, Reply, format_reply, parse_arguments

log = logging.getLogger(__name__)

MAX_USERS = 1024

_MOTD_LINES = (
    "-  Hello, World!",
    "-               @                    _ ",
    "-   ____  ___   _   _ _   ____.     | |",
    "-  /  _ `'_  \\ | | | '_/ /  __|  ___| |",
    "-  | | | | | | | | | |   | |    /  _  |",
    "-  | | | | | | | | | |   | |__  | |_| |",
    "-  |_| |_| |_| |_| |_|   \\____| \\___,_|",
    "-  minimized internet relay chat daemon",
    "-",
)


@dataclass
class User:
    """A connected client."""

    uid: int
    address: tuple
    nickname: str = ""
    username: str = ""
    hostname: str = ""
    servername: str = ""
    realname: str = ""
    channel: str | None = None
    logged_in: bool = False

    def ip(self) -> str:
        """The peer address, with the loopback address shown as localhost."""
        host = self.address[0]
        return "localhost" if host == "127.0.0.1" else host


@dataclass
class Channel:
    """A chat channel; it lives until the daemon stops."""

    name: str
    topic: str = ""
    nusers: int = 1


@dataclass
class Response:
    """Lines to send, each addressed to a user id, and whether to disconnect."""

    messages: list[tuple[int, str]] = field(default_factory=list)
    close: bool = False


class IrcState:
    """Users, channels and the effect of each command on them."""

    def __init__(self, max_users: int = MAX_USERS) -> None:
        self.max_users = max_users
        self.users: dict[int, User] = {}
        self.channels: dict[str, Channel] = {}
        self.user_count = 0
        self._handlers: dict[Command, Callable[[Response, User, list[str]], None]] = {
            Command.NICK: self._nick,
            Command.USER: self._user,
            Command.USERS: self._users,
            Command.JOIN: self._join,
            Command.LIST: self._list,
            Command.TOPIC: self._topic,
            Command.PING: self._ping,
            Command.NAMES: self._names,
            Command.PART: self._part,
            Command.PRIVMSG: self._privmsg,
        }

    def add_user(self, address: tuple) -> int:
        """Register a new connection and return its user id (lowest free)."""
        uid = next((i for i in range(self.max_users) if i not in self.users), None)
        if uid is None:
            raise RuntimeError("too many clients")
        self.users[uid] = User(uid=uid, address=address)
        return uid

    def remove_user(self, uid: int) -> None:
        """Forget a connection."""
        self.users.pop(uid, None)

    def handle(self, uid: int, line: str) -> Response:
        """Apply one command line from user *uid* and return what to send."""
        args = parse_arguments(line)
        log.debug("parsed command from %d: %r", uid, args)
        response = Response()
        if not args:
            return response
        user = self.users[uid]
        identifier, *rest = args
        try:
            command = Command(identifier)
        except ValueError:
            nickname = user.nickname if user.logged_in else ""
            self._reply(response, user, Reply.ERR_UNKNOWNCOMMAND, nickname,
                        identifier, ":Unknown command")
            return response
        if command is Command.QUIT:
            self._quit(user)
            response.close = True
            return response
        self._handlers[command](response, user, rest)
        return response

    # helpers

    @staticmethod
    def _reply(response: Response, user: User, code: Reply | str, *args: str) -> None:
        response.messages.append((user.uid, format_reply(code, *args)))

    @staticmethod
    def _raw(response: Response, user: User, text: str) -> None:
        response.messages.append((user.uid, text + "\r\n"))

    def _members(self, name: str) -> list[User]:
        return [self.users[uid] for uid in sorted(self.users)
                if self.users[uid].channel == name]

    def _find_channel(self, response: Response, user: User, target: str) -> Channel | None:
        channel = self.channels.get(target)
        if channel is None:
            self._reply(response, user, Reply.ERR_NOSUCHCHANNEL, user.nickname,
                        target, ":No such channel")
        return channel

    def _not_enough(self, response: Response, user: User, command: str) -> None:
        self._reply(response, user, Reply.ERR_NEEDMOREPARAMS, user.nickname,
                    command, ":Not enough parameters")

    def _topic_reply(self, response: Response, user: User, channel: Channel) -> None:
        if channel.topic:
            self._reply(response, user, Reply.RPL_TOPIC, user.nickname,
                        channel.name, ":" + channel.topic)
        else:
            self._reply(response, user, Reply.RPL_NOTOPIC, user.nickname,
                        channel.name, ":No topic is set")

    # command handlers

    def _quit(self, user: User) -> None:
        self.user_count -= 1
        if user.channel is not None:
            self.channels[user.channel].nusers -= 1

    def _nick(self, response: Response, user: User, args: list[str]) -> None:
        if not args:
            self._reply(response, user, Reply.ERR_NEEDMOREPARAMS, ":No nickname given")
            return
        nickname = args[0]
        if any(other.nickname == nickname for other in self.users.values()):
            self._reply(response, user, Reply.ERR_NICKCOLLISION, user.nickname,
                        nickname, ":Nickname collision KILL")
            return
        user.nickname = nickname

    def _user(self, response: Response, user: User, args: list[str]) -> None:
        if len(args) < 4:
            self._not_enough(response, user, "USER")
            return
        user.servername, user.username, user.hostname, user.realname = args[:4]
        if not user.logged_in:
            self.user_count += 1
        user.logged_in = True
        nick = user.nickname
        self._reply(response, user, Reply.RPL_WELCOME, nick,
                    ":Welcome to the minimized IRC daemon!")
        self._reply(response, user, Reply.RPL_SERVMSG, nick,
                    f":There are {self.user_count} users and 0 invisible on 1 server")
        self._reply(response, user, Reply.RPL_MOTDSTART, nick,
                    ":- mircd Message of the day -")
        for text in _MOTD_LINES:
            self._reply(response, user, Reply.RPL_MOTD, nick, ":" + text)
        self._reply(response, user, Reply.RPL_ENDOFMOTD, nick,
                    ":End of message of the day")

    def _list(self, response: Response, user: User, args: list[str]) -> None:
        if not self.channels:
            return
        nick = user.nickname
        self._reply(response, user, Reply.RPL_LISTSTART, nick, "Channel", " :Users  Name")
        if len(args) == 1:
            channel = self._find_channel(response, user, args[0])
            if channel is None:
                return
            selected = [channel]
        else:
            selected = list(self.channels.values())
        for channel in selected:
            self._reply(response, user, Reply.RPL_LIST, nick, channel.name,
                        str(channel.nusers), ":" + channel.topic)
        self._reply(response, user, Reply.RPL_LISTEND, nick, ":End of /LIST")

    def _join(self, response: Response, user: User, args: list[str]) -> None:
        if not args:
            self._not_enough(response, user, "JOIN")
            return
        name = args[0]
        user.channel = name
        channel = self.channels.get(name)
        if channel is None:
            channel = self.channels[name] = Channel(name)
        else:
            channel.nusers += 1
        members = self._members(name)
        for member in members:
            self._raw(response, member, f":{user.nickname} JOIN {name}")
        self._topic_reply(response, user, channel)
        for member in members:
            self._reply(response, user, Reply.RPL_NAMREPLY, user.nickname, name,
                        ":" + member.nickname)
        self._reply(response, user, Reply.RPL_ENDOFNAMES, "@" + user.nickname, name,
                    ":End of /NAMES List")

    def _users(self, response: Response, user: User, args: list[str]) -> None:
        nick = user.nickname
        self._reply(response, user, Reply.RPL_USERSSTART, nick, ":UserID   Terminal   Host")
        for uid in sorted(self.users):
            other = self.users[uid]
            self._reply(response, user, Reply.RPL_USERS, nick,
                        f":{other.nickname:<8} {'-':<9} {other.ip():<8}")
        self._reply(response, user, Reply.RPL_ENDOFUSERS, nick, ":End of users")

    def _ping(self, response: Response, user: User, args: list[str]) -> None:
        if not args:
            self._reply(response, user, Reply.ERR_NOORIGIN, user.nickname, "PING",
                        ":No origin specified")
            return
        source, *rest = args
        if len(rest) == 1:
            self._raw(response, user, f"PONG {source} {rest[0]}")
        else:
            self._raw(response, user, f"PONG {source}")

    def _topic(self, response: Response, user: User, args: list[str]) -> None:
        if not args:
            self._not_enough(response, user, "TOPIC")
            return
        name, *rest = args
        channel = self._find_channel(response, user, name)
        if channel is None:
            return
        if user.channel != name:
            self._reply(response, user, Reply.ERR_NOTONCHANNEL, name,
                        ":You're not on that channel")
            return
        if rest:
            channel.topic = rest[0]
        self._topic_reply(response, user, channel)

    def _names(self, response: Response, user: User, args: list[str]) -> None:
        if args:
            channel = self._find_channel(response, user, args[0])
        else:
            channel = self.channels.get(user.channel) if user.channel else None
        if channel is None:
            return
        for member in self._members(channel.name):
            self._reply(response, user, Reply.RPL_NAMREPLY, member.nickname,
                        channel.name, ":" + member.nickname)
        self._reply(response, user, Reply.RPL_ENDOFNAMES, user.nickname, channel.name,
                    ":End of Names List")

    def _part(self, response: Response, user: User, args: list[str]) -> None:
        if not args:
            self._not_enough(response, user, "PART")
            return
        name = args[0]
        channel = self._find_channel(response, user, name)
        if channel is None:
            return
        if user.channel != name:
            self._reply(response, user, Reply.ERR_NOTONCHANNEL, user.nickname, name,
                        ":You're not on that channel")
            return
        for member in self._members(name):
            self._raw(response, member, f":{user.nickname} PART :{channel.name}")
        user.channel = None
        channel.nusers -= 1

    def _privmsg(self, response: Response, user: User, args: list[str]) -> None:
        if not args:
            self._reply(response, user, Reply.ERR_NOTEXTTOSEND, user.nickname,
                        ":No recipient given (PRIVMSG)")
            return
        target, *rest = args
        if not rest:
            self._reply(response, user, Reply.ERR_NOTEXTTOSEND, user.nickname,
                        "PRIVMSG", ":No text to send")
            return
        channel = self.channels.get(target)
        if channel is None:
            self._reply(response, user, Reply.ERR_NOSUCHNICK, user.nickname, target,
                        ":No such nick/channel")
            return
        text = rest[0]
        if user.channel != target:
            self._reply(response, user, Reply.ERR_NOTONCHANNEL, user.nickname, target,
                        ":You're not on that channel")
            return
        for member in self._members(target):
            if member.uid != user.uid:
                self._raw(response, member,
                          f":{user.nickname} PRIVMSG {channel.name} :{text}")