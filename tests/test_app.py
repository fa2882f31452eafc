import socket
import struct
import threading
import time

from sensorsrv.app import main


def _free_port():
    with socket.socket() as probe:
        probe.bind(("127.0.0.1", 0))
        return probe.getsockname()[1]


def _connect(port, attempts=250):
    for _ in range(attempts):
        try:
            return socket.create_connection(("127.0.0.1", port), timeout=5)
        except OSError:
            time.sleep(0.02)
    raise AssertionError("server did not start listening")


def _recv_exact(sock, size):
    data = b""
    while len(data) < size:
        chunk = sock.recv(size - len(data))
        if not chunk:
            break
        data += chunk
    return data


def test_main_fails_when_port_is_taken(tmp_path):
    with socket.socket() as blocker:
        blocker.bind(("", 0))
        blocker.listen()
        port = blocker.getsockname()[1]
        status = main(["--port", str(port), "--device", str(tmp_path / "missing")])
    assert status == 1


def test_main_serves_until_shutdown(tmp_path):
    port = _free_port()
    result = []
    thread = threading.Thread(
        target=lambda: result.append(
            main(["--port", str(port), "--device", str(tmp_path / "missing")])
        ),
        daemon=True,
    )
    thread.start()
    with _connect(port) as client:
        client.sendall(b"START\n")
        assert _recv_exact(client, 6) == b"RATES\n"
        rates = list(struct.iter_unpack("<II", _recv_exact(client, 40)))
        assert [sensor for sensor, _ in rates] == [0, 1, 2, 3, 4]
        assert all(rate == 300 for _, rate in rates)
        client.sendall(b"SHUTDOWN\n")
    thread.join(10)
    assert not thread.is_alive()
    assert result == [0]