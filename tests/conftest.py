"""
Pytest configuration and shared fixtures for the typewire test suite.
"""

import sys
from pathlib import Path

import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from infrastructure.configuration import Settings  # noqa: E402
from infrastructure.monitoring import reset_metrics  # noqa: E402
from typewire.builder import SchemaBuilder  # noqa: E402
from typewire.converters import ConverterRegistry  # noqa: E402
from typewire.decoder import TypedValueDecoder  # noqa: E402
from typewire.generator import OpenAPIGenerator  # noqa: E402
from typewire.wrappers import WrapperResolver  # noqa: E402


@pytest.fixture(autouse=True)
def _fresh_metrics():
    """Start every test from empty metric totals."""
    reset_metrics()
    yield


@pytest.fixture
def registry() -> ConverterRegistry:
    return ConverterRegistry()


@pytest.fixture
def resolver(registry: ConverterRegistry) -> WrapperResolver:
    return WrapperResolver(registry)


@pytest.fixture
def builder(registry: ConverterRegistry, resolver: WrapperResolver) -> SchemaBuilder:
    return SchemaBuilder(registry, resolver)


@pytest.fixture
def decoder(resolver: WrapperResolver) -> TypedValueDecoder:
    return TypedValueDecoder(resolver)


@pytest.fixture
def generator() -> OpenAPIGenerator:
    return OpenAPIGenerator(Settings())


def multipart_body(boundary: str, parts: list[tuple[dict[str, str], bytes]]) -> bytes:
    """Assemble a multipart body from ``(headers, payload)`` pairs."""
    out = b""
    for headers, payload in parts:
        out += f"--{boundary}\r\n".encode()
        for key, value in headers.items():
            out += f"{key}: {value}\r\n".encode()
        out += b"\r\n" + payload + b"\r\n"
    return out + f"--{boundary}--\r\n".encode()


pytest.multipart_body = multipart_body
