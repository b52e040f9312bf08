"""
Socket-level tests: a real NetworkServer on an ephemeral port with NetworkClients.
"""

import socket
import threading
import time

import pytest

from cardtable.client.network import NetworkClient
from cardtable.server.game import GameRoom
from cardtable.server.network import ClientSession, ConnectionRegistry, Dispatcher, NetworkServer
from cardtable.shared.constants import MAX_LINE_LENGTH


def is_update(predicate):
    return lambda msg: msg.type == "update" and predicate(msg.data)


@pytest.fixture
def server(rng):
    srv = NetworkServer("127.0.0.1", 0, Dispatcher(GameRoom(rng=rng), ConnectionRegistry(capacity=3)))
    srv.start()
    yield srv
    srv.stop()


@pytest.fixture
def clients():
    created = []

    def factory(server):
        client = NetworkClient(*server.address)
        created.append(client)
        return client

    yield factory
    for client in created:
        client.close()


def test_join_deal_play_and_abandon(server, clients):
    ann = clients(server)
    assert ann.connect("Ann")
    assert ann.wait_for(lambda m: m.type == "init") is not None
    assert ann.wait_for(is_update(lambda u: u["player"] is not None)) is not None

    bob = clients(server)
    assert bob.connect("Bob")
    assert bob.wait_for(is_update(lambda u: u["player"] is not None)) is not None

    ann.deal(13)
    ann_view = ann.wait_for(is_update(lambda u: len(u["player"]["hand"]) == 13))
    assert ann_view is not None
    assert bob.wait_for(is_update(lambda u: len(u["player"]["hand"]) == 13)) is not None

    cards = ann_view.data["player"]["hand"][:2]
    ann.play(cards)
    table = bob.wait_for(is_update(lambda u: len(u["round"]) == 1))
    assert table is not None
    assert table.data["round"][0]["cards"] == cards

    ann.close()
    ghost = bob.wait_for(is_update(lambda u: any("id" in o for o in u["opponents"])))
    assert ghost is not None
    assert ghost.data["opponents"][0]["cardCount"] == 11


def test_heartbeat_and_garbage(server, clients):
    ann = clients(server)
    assert ann.connect("Ann")
    ann.sock.sendall(b"this is not json\n")
    ann.heartbeat()
    reply = ann.wait_for(lambda m: m.type == "hb")
    assert reply is not None
    assert ann.connected


def test_connections_over_capacity_are_closed(server, clients):
    for name in ("a", "b", "c"):
        client = clients(server)
        assert client.connect(name)
        assert client.wait_for(lambda m: m.type == "init") is not None

    extra = clients(server)
    extra.connect("d")
    deadline = time.monotonic() + 2.0
    while extra.connected and time.monotonic() < deadline:
        time.sleep(0.02)
    assert not extra.connected
    assert len(server.dispatcher.registry) == 3


def test_undecodable_lines_keep_the_seat(server, clients):
    ann = clients(server)
    assert ann.connect("Ann")
    assert ann.wait_for(lambda m: m.type == "init") is not None
    ann.sock.sendall(b'{"type": "deal", "data": ' + b"1" * 5000 + b"}\n")
    ann.sock.sendall(b"[" * 30000 + b"]" * 30000 + b"\n")
    ann.sock.sendall(b"x" * (MAX_LINE_LENGTH * 3) + b"\n")
    ann.heartbeat()
    assert ann.wait_for(lambda m: m.type == "hb") is not None
    assert ann.connected
    players = list(server.dispatcher.room.players.values())
    assert len(players) == 1
    assert not players[0].abandoned
    assert len(server.dispatcher.registry) == 1


def test_stalled_reader_does_not_block_others(rng, clients):
    srv = NetworkServer(
        "127.0.0.1",
        0,
        Dispatcher(GameRoom(rng=rng), ConnectionRegistry(capacity=3)),
        send_timeout=0.3,
    )
    srv.start()

    # 只发不收的连接：服务器的发送缓冲区很快被塞满
    staller = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    staller.setsockopt(socket.SOL_SOCKET, socket.SO_RCVBUF, 4096)
    staller.connect(srv.address)
    staller.settimeout(1.0)
    staller.sendall(b'{"type": "init", "data": "Slow"}\n')
    stop_flood = threading.Event()

    def flood():
        burst = b'{"type": "hb"}\n' * 256
        while not stop_flood.is_set():
            try:
                staller.sendall(burst)
            except socket.timeout:
                continue
            except OSError:
                break

    flooder = threading.Thread(target=flood, daemon=True)
    flooder.start()
    try:
        time.sleep(0.2)
        bob = clients(srv)
        assert bob.connect("Bob")
        assert bob.wait_for(lambda m: m.type == "init", timeout=5.0) is not None

        deadline = time.monotonic() + 10.0
        while len(srv.dispatcher.registry) > 1 and time.monotonic() < deadline:
            time.sleep(0.05)
        assert len(srv.dispatcher.registry) == 1
        assert bob.connected
    finally:
        stop_flood.set()
        stopper = threading.Thread(target=srv.stop, daemon=True)
        stopper.start()
        stopper.join(timeout=5.0)
        staller.close()
    assert not stopper.is_alive()


def test_send_timeout_closes_a_peer_that_never_reads():
    left, right = socket.socketpair()
    sess = ClientSession(left, ("local", 0), send_timeout=0.1)
    try:
        chunk = "x" * 65536
        for _ in range(1000):
            sess.send_text(chunk)
            if sess.closed:
                break
        assert sess.closed
    finally:
        sess.close()
        right.close()


def test_feed_splits_lines_and_drops_overlong_ones():
    left, right = socket.socketpair()
    sess = ClientSession(left, ("local", 0))
    try:
        assert sess.feed(b'{"type": ') == []
        assert sess.feed(b'"hb"}\n{"type"') == [b'{"type": "hb"}']
        assert sess.feed(b"x" * MAX_LINE_LENGTH) == []
        # 超长的行一直丢到下一个换行符
        assert sess.feed(b"yyy\n" + b'{"type": "undo"}\n') == [b'{"type": "undo"}']
        assert sess.feed(b'{"type": "draw"}\n') == [b'{"type": "draw"}']
    finally:
        sess.close()
        right.close()
