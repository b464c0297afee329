# inpkit

A handful of small network programs built on the standard library's sockets,
with no third-party dependencies:

- **ircd** (`inpkit.ircd`): a minimal IRC daemon handling `NICK`, `USER`,
  `PING`, `LIST`, `JOIN`, `TOPIC`, `NAMES`, `PART`, `USERS`, `PRIVMSG` and
  `QUIT`.
- **dnsd** (`inpkit.dnsd`): a small authoritative DNS server over UDP that
  answers `A`, `AAAA`, `NS`, `CNAME`, `MX`, `TXT` and `SOA` queries from zone
  files and forwards queries outside its zones to an upstream resolver.
- **pako** (`inpkit.pako`): reads PAKO archives, checks each entry's XOR
  checksum and extracts the entries that pass.
- **execserver** (`inpkit.execserver`): a TCP server that runs a command for
  every connection, with the connection as the command's standard input,
  output and error.
- **clients** (`inpkit.clients`): a line-counting challenge client and a
  rate-limited sender that reports throughput.
- **lineio** (`inpkit.lineio`): helpers for reading a line from a socket,
  sending all bytes, resolving a host and opening TCP servers and clients.

## Installation

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

## Commands

### IRC daemon

```
inpkit-ircd 6667
```

Listens on the given TCP port on all interfaces. A new client is expected to
send its `NICK` and `USER` lines first; after `USER` it receives the welcome
message and the message of the day. Then `JOIN #channel`, `TOPIC`, `NAMES`,
`LIST`, `USERS`, `PART` and `PRIVMSG #channel :text` work as usual. Messages
can only be sent to channels the user has joined.

### DNS server

```
inpkit-dnsd 5353 [--config FILE] [--summary]
```

Listens on the given UDP port. The configuration defaults to `config.txt` in
the current directory; `--summary` prints every loaded zone before serving.

The first line of the configuration is the IPv4 address of the upstream
resolver (queried on port 53); each further line names a zone and its zone
file, the file path taken relative to the configuration file:

```
8.8.8.8
example1.org.,zones/example1.org.txt
```

A zone file starts with the zone name on its own line, followed by one record
per line as `name,TTL,CLASS,TYPE,data`. A name of `@` keeps the name of the
previous record (the zone itself at the start of the file); any other name is
taken relative to the zone and becomes a subzone:

```
example1.org.
@,3600,IN,SOA,ns.example1.org. admin.example1.org. 2022010101 3600 300 604800 60
@,3600,IN,NS,dns.example1.org.
@,3600,IN,MX,10 mail.example1.org.
dns,3600,IN,A,140.113.0.1
mail,3600,IN,A,140.113.0.2
```

Responses carry the matching answers; when there is none, the zone's SOA
record goes in the authority section, otherwise its NS records do (except for
NS queries). For NS and MX queries the A and AAAA records of the named hosts
are added. A name inside a known zone whose first four labels form an IPv4
address, such as `10.0.0.1.example1.org.`, is answered with that address.

Query it with any resolver tool, for example
`dig @127.0.0.1 -p 5353 example1.org. NS`.

### PAKO extractor

```
inpkit-pako archive.pak output_dir
```

Prints the archive header and entry table, verifies every entry and writes
the ones whose checksum matches into `output_dir`.

### Exec server

```
inpkit-exec 9877 date
```

Every client that connects to the port gets its own run of the command; the
server reports each finished child.

### Clients

```
inpkit-challenge HOST PORT
inpkit-flood RATE [--host HOST] [--port PORT] [--duration SECONDS]
```

`inpkit-challenge` reads the server's two greeting lines, sends `GO`, counts
the bytes of the data line it receives (newline included) and sends that
count back.

`inpkit-flood` sends zero bytes at `RATE` times 960,000 bytes per second to
`HOST` (default `localhost`) on `PORT` (default 10003) until interrupted or
until `--duration` has passed, then prints the achieved throughput to
standard error.

## Library use

The pieces behind the commands can be used directly:

```python
from inpkit.pako import read_archive

with open("archive.pak", "rb") as fh:
    archive = read_archive(fh.read())

for entry in archive.entries:
    if archive.verify(entry):
        data = archive.content(entry)
```

```python
from inpkit.dnsd.wire import encode_name

encode_name("www.example.org.")  # b"\x03www\x07example\x03org\x00"
```

```python
from inpkit.ircd.state import IrcState

state = IrcState()
uid = state.add_user(("127.0.0.1", 50000))
state.handle(uid, "NICK alice\r\n")
response = state.handle(uid, "USER alice host server :Alice\r\n")
for target, line in response.messages:
    print(target, line, end="")
```

`inpkit.dnsd.resolver.Resolver` builds a response for a raw query packet from
a mapping of zones (as returned by `inpkit.dnsd.zone.load_config`), returning
`None` when the query lies outside them.

## Limitations

- The DNS server speaks UDP only, does not compress names in its responses
  and does no recursion of its own: queries outside its zones are handed to
  the upstream resolver as they are.
- The IRC daemon keeps everything in memory, has no channel or user modes,
  keeps each user in at most one channel at a time and never removes a
  channel once created.