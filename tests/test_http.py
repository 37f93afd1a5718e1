import http.client
import socket

import pytest

from defect_bridge.http import HttpError, post_xml


@pytest.mark.parametrize(
    "failure",
    [
        http.client.RemoteDisconnected("Remote end closed connection without response"),
        http.client.IncompleteRead(b"<soap:Env"),
        ConnectionResetError(104, "Connection reset by peer"),
        socket.timeout("timed out"),
    ],
)
def test_transport_failures_raise_http_error(monkeypatch, failure):
    def failing_urlopen(*args, **kwargs):
        raise failure

    monkeypatch.setattr("defect_bridge.http.request.urlopen", failing_urlopen)

    with pytest.raises(HttpError) as excinfo:
        post_xml("http://cim.local:8080/ws/v6/configurationservice", "<x/>")

    assert excinfo.value.status is None
    assert excinfo.value.__cause__ is failure
