import time


def _events(sio_client, name):
    return [pkt['args'] for pkt in sio_client.get_received() if pkt['name'] == name]


def _wait_for(sio_client, name, timeout=3.0):
    """Poll for a pushed event (the countdown runs on a background task)."""
    deadline = time.time() + timeout
    seen = []
    while time.time() < deadline:
        for pkt in sio_client.get_received():
            seen.append(pkt)
        matches = [pkt['args'] for pkt in seen if pkt['name'] == name]
        if matches:
            return matches, seen
        time.sleep(0.05)
    return [], seen


def test_connect_sends_server_info(flask_app):
    from reveal import socketio
    sio_client = socketio.test_client(flask_app)
    assert sio_client.is_connected()
    received = sio_client.get_received()
    connected = [pkt for pkt in received if pkt['name'] == 'connected']
    assert connected
    assert connected[0]['args'][0]['serverInfo']['version'] == 'test'
    sio_client.disconnect()


def test_create_and_join_acks(sio_factory):
    alice = sio_factory()
    bob = sio_factory()

    ack = alice.emit('createRoom', 'Alice', callback=True)
    assert ack['ok'] is True
    code = ack['roomCode']
    assert ack['snapshot']['players'][0]['name'] == 'Alice'
    assert ack['roomId'] == code

    ack = bob.emit('joinRoom', code.lower(), 'Bob', callback=True)
    assert ack['ok'] is True
    assert ack['roomCode'] == code
    assert [p['name'] for p in ack['snapshot']['players']] == ['Alice', 'Bob']

    updates = _events(alice, 'roomUpdate')
    assert len(updates[-1][0]['players']) == 2


def test_join_errors(sio_factory):
    alice, bob, carol = sio_factory(), sio_factory(), sio_factory()
    ack = carol.emit('joinRoom', 'QQQQ', 'Carol', callback=True)
    assert ack == {'ok': False, 'error': 'RoomNotFound', 'message': 'Room not found'}

    code = alice.emit('createRoom', 'Alice', callback=True)['roomCode']
    bob.emit('joinRoom', code, 'Bob', callback=True)
    ack = carol.emit('joinRoom', code, 'Carol', callback=True)
    assert ack['ok'] is False
    assert ack['error'] == 'RoomFull'


def test_full_reveal_round(sio_factory):
    alice, bob = sio_factory(), sio_factory()
    code = alice.emit('createRoom', 'Alice', callback=True)['roomCode']
    bob.emit('joinRoom', code, 'Bob', callback=True)

    assert alice.emit('setSecret', code, 'MIT', callback=True) == {'ok': True}
    assert bob.emit('setSecret', code, 'Yale', callback=True) == {'ok': True}
    assert alice.emit('setReady', code, True, callback=True) == {'ok': True}
    assert bob.emit('setReady', code, True, callback=True) == {'ok': True}

    reveals, seen = _wait_for(alice, 'reveal')
    assert [pkt['args'] for pkt in seen if pkt['name'] == 'startCountdown'] == [[0]]
    assert reveals == [[[{'name': 'Alice', 'secret': 'MIT'}, {'name': 'Bob', 'secret': 'Yale'}]]]

    reveals, _ = _wait_for(bob, 'reveal')
    assert len(reveals) == 1

    stats = alice.emit('getRoomStats', code, callback=True)
    assert stats['ok'] is True
    assert stats['stats']['gameCount'] == 1


def test_not_in_room_and_request_reveal_errors(sio_factory):
    alice, bob = sio_factory(), sio_factory()
    code = alice.emit('createRoom', 'Alice', callback=True)['roomCode']

    ack = bob.emit('setSecret', code, 'Yale', callback=True)
    assert ack['error'] == 'NotInRoom'
    ack = bob.emit('setReady', code, True, callback=True)
    assert ack['error'] == 'NotInRoom'

    assert alice.emit('requestReveal', code, callback=True)['error'] == 'NeedTwoPlayers'
    bob.emit('joinRoom', code, 'Bob', callback=True)
    alice.emit('setSecret', code, 'MIT', callback=True)
    assert alice.emit('requestReveal', code, callback=True)['error'] == 'SecretsMissing'
    assert alice.emit('requestReveal', 'QQQQ', callback=True)['error'] == 'RoomNotFound'

    bob.emit('setSecret', code, 'Yale', callback=True)
    bob.get_received()
    assert alice.emit('requestReveal', code, callback=True) == {'ok': True}
    assert _events(bob, 'reveal')


def test_disconnect_is_a_leave(sio_factory):
    alice, bob = sio_factory(), sio_factory()
    code = alice.emit('createRoom', 'Alice', callback=True)['roomCode']
    bob.emit('joinRoom', code, 'Bob', callback=True)
    alice.get_received()

    bob.disconnect()
    received = alice.get_received()
    notices = [pkt['args'][0] for pkt in received if pkt['name'] == 'playerDisconnected']
    assert notices == [{'message': 'A player has disconnected', 'remainingPlayers': 1}]
    updates = [pkt['args'][0] for pkt in received if pkt['name'] == 'roomUpdate']
    assert [p['name'] for p in updates[-1]['players']] == ['Alice']


def test_leave_room_deletes_empty_room(sio_factory, client):
    alice = sio_factory()
    code = alice.emit('createRoom', 'Alice', callback=True)['roomCode']
    assert client.get(f'/api/rooms/{code}').status_code == 200
    assert alice.emit('leaveRoom', code, callback=True) == {'ok': True}
    assert client.get(f'/api/rooms/{code}').status_code == 404
    # leaving again is still fine
    assert alice.emit('leaveRoom', code, callback=True) == {'ok': True}


def test_unexpected_failure_becomes_internal_error(flask_app, sio_factory, monkeypatch):
    alice = sio_factory()
    service = flask_app.extensions['rooms']

    def boom(*_args):
        raise RuntimeError('boom')

    monkeypatch.setattr(service, 'create_room', boom)
    ack = alice.emit('createRoom', 'Alice', callback=True)
    assert ack['ok'] is False
    assert ack['error'] == 'InternalError'
    assert alice.is_connected()


def test_server_stats_event(sio_factory):
    alice = sio_factory()
    alice.emit('createRoom', 'Alice', callback=True)
    ack = alice.emit('getServerStats', callback=True)
    assert ack['ok'] is True
    assert ack['stats']['totalRooms'] == 1
    assert ack['stats']['activeConnections'] >= 1
