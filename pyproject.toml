[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "inpkit"
version = "0.1.0"
description = "Small network programs: an IRC daemon, an authoritative DNS server, a PAKO archive extractor and TCP helpers"
requires-python = ">=3.10"
dependencies = []
keywords = ["irc", "dns", "tcp", "udp", "sockets", "archive", "networking"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: Education",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet",
    "Topic :: Communications :: Chat :: Internet Relay Chat",
    "Topic :: Internet :: Name Service (DNS)",
    "Topic :: System :: Networking",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
inpkit-pako = "inpkit.pako:main"
inpkit-exec = "inpkit.execserver:main"
inpkit-ircd = "inpkit.ircd.server:main"
inpkit-challenge = "inpkit.clients:challenge_main"
inpkit-flood = "inpkit.clients:flood_main"
inpkit-dnsd = "inpkit.dnsd.server:main"

[tool.hatch.build.targets.wheel]
packages = ["inpkit"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
