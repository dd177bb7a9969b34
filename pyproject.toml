[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "cephvolsync"
version = "0.1.0"
description = "Ceph volume replication helpers: CSI identifiers, ceph-csi cluster config, connection pooling, RBD/CephFS path helpers and replication state"
requires-python = ">=3.10"
dependencies = []
keywords = ["ceph", "csi", "rbd", "cephfs", "replication", "volsync"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Filesystems",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["cephvolsync"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
