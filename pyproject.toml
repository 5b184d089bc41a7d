[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "torrentwire"
version = "0.1.0"
description = "BitTorrent building blocks: bencode, metainfo, magnet links, peer wire messages, handshakes and choking."
requires-python = ">=3.10"
dependencies = [
    "humanize",
]
keywords = ["bittorrent", "bencode", "torrent", "peer-wire", "metainfo", "magnet", "ut_metadata"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Communications :: File Sharing",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["torrentwire"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
