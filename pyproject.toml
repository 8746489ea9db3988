[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "hcible"
version = "0.1.0"
description = "Bluetooth Low Energy host-side building blocks: an HCI serial transport, L2CAP signaling and LE Secure Connections crypto"
requires-python = ">=3.10"
keywords = ["bluetooth", "ble", "hci", "l2cap", "smp", "aes-cmac", "pairing"]
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
    "Topic :: Communications",
    "Topic :: Security :: Cryptography",
    "Topic :: Software Development :: Libraries :: Python Modules",
]
dependencies = [
    "cryptography",
    "pyserial",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["hcible"]

[tool.pytest.ini_options]
addopts = "-ra"
