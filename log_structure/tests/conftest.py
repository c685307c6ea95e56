import pytest


@pytest.fixture
def explanation():
    return []


@pytest.fixture
def bracketed_sample():
    return "[2020-01-01 10:00:00] ERROR starting up\n[2020-01-01 10:00:05] INFO ready\n"


@pytest.fixture
def stack_trace_lines():
    return [
        "2024-01-01 10:00:00,123 ERROR Failed",
        "java.lang.RuntimeException: boom",
        "\tat com.example.Foo.bar(Foo.java:10)",
        "2024-01-01 10:00:01,456 INFO Recovered",
        "2024-01-01 10:00:02,789 INFO Done",
    ]
