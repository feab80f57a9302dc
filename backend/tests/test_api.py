def _create_room(c, name='Lobby', **extra):
    res = c.post('/api/rooms', json={'name': name, **extra})
    assert res.status_code == 201, res.get_json()
    return res.get_json()


def test_health(client):
    res = client.get('/api/health')
    assert res.status_code == 200
    data = res.get_json()
    assert data['status'] == 'ok'
    assert 'timestamp' in data and 'uptime' in data and 'version' in data


def test_register_login_and_current_user(client):
    res = client.post('/register', json={'username': 'alice', 'password': 'pw'})
    assert res.status_code == 201
    assert client.get('/api/auth/user').get_json()['username'] == 'alice'
    assert client.post('/logout').status_code == 200
    assert client.get('/api/auth/user').status_code == 401

    bad = client.post('/login', json={'username': 'alice', 'password': 'nope'})
    assert bad.status_code == 401
    good = client.post('/login', json={'username': 'alice', 'password': 'pw'})
    assert good.get_json()['success'] is True
    assert client.get('/check_login').get_json()['user']['username'] == 'alice'


def test_duplicate_username_rejected(client):
    client.post('/register', json={'username': 'alice', 'password': 'pw'})
    res = client.post('/register', json={'username': 'alice', 'password': 'pw'})
    assert res.status_code == 400


def test_mutations_require_login(client):
    assert client.post('/api/rooms', json={'name': 'x'}).status_code == 401
    res = client.post('/api/games/1/move', json={'row': 0, 'col': 0})
    assert res.status_code == 401
    assert res.get_json()['code'] == 'unauthorized'


def test_create_room_auto_joins_creator(user_client):
    alice = user_client('alice')
    room = _create_room(alice, 'Friday', tags=['casual'])
    assert room['current_players'] == 1
    assert room['max_players'] == 2
    assert room['status'] == 'waiting'
    assert room['participants'][0]['user_id'] == alice.user_id


def test_create_room_validation_error(user_client):
    alice = user_client('alice')
    res = alice.post('/api/rooms', json={'name': ''})
    assert res.status_code == 400
    assert res.get_json()['code'] == 'validation_error'


def test_list_rooms_filters_by_tag(user_client, client):
    alice = user_client('alice')
    _create_room(alice, 'Chill', tags=['Casual'])
    _create_room(alice, 'Sweaty', tags=['ranked'])

    names = [r['name'] for r in client.get('/api/rooms').get_json()]
    assert names == ['Sweaty', 'Chill']
    tagged = client.get('/api/rooms?tags=casual').get_json()
    assert [r['name'] for r in tagged] == ['Chill']


def test_unknown_room_is_404(client):
    res = client.get('/api/rooms/999')
    assert res.status_code == 404
    assert res.get_json()['code'] == 'not_found'


def test_join_full_flow_and_play(user_client, client):
    alice = user_client('alice')
    bob = user_client('bob')
    room = _create_room(alice)

    assert client.get(f"/api/rooms/{room['id']}/game").get_json() is None

    joined = bob.post(f"/api/rooms/{room['id']}/join").get_json()
    assert joined['joined'] is True
    assert joined['room']['status'] == 'active'
    game = joined['game']
    assert game['player1_id'] == alice.user_id
    assert game['current_player_id'] == alice.user_id
    assert game['symbols'][str(alice.user_id)] == 'X'

    again = bob.post(f"/api/rooms/{room['id']}/join")
    assert again.status_code == 200
    assert again.get_json()['already_joined'] is True

    # bob moves first -> conflict
    res = bob.post(f"/api/games/{game['id']}/move", json={'row': 0, 'col': 0})
    assert res.status_code == 409
    assert res.get_json()['code'] == 'not_your_turn'

    moves = [(alice, 0, 0), (bob, 1, 1), (alice, 0, 1), (bob, 2, 2)]
    for player, row, col in moves:
        res = player.post(f"/api/games/{game['id']}/move", json={'row': row, 'col': col})
        assert res.status_code == 200, res.get_json()

    final = alice.post(f"/api/games/{game['id']}/move", json={'row': 0, 'col': 2}).get_json()
    assert final['winner'] == 'X'
    assert final['winner_id'] == alice.user_id
    assert final['status'] == 'finished'
    assert final['next_player_id'] is None

    state = client.get(f"/api/games/{game['id']}").get_json()
    assert state['board'][0] == ['X', 'X', 'X']
    assert state['status'] == 'finished'

    after = bob.post(f"/api/games/{game['id']}/move", json={'row': 2, 'col': 0})
    assert after.status_code == 409
    assert after.get_json()['code'] == 'not_your_turn'

    room_game = client.get(f"/api/rooms/{room['id']}/game").get_json()
    assert room_game['id'] == game['id']


def test_third_player_gets_room_full(user_client):
    alice, bob, cara = user_client('alice'), user_client('bob'), user_client('cara')
    room = _create_room(alice)
    bob.post(f"/api/rooms/{room['id']}/join")
    res = cara.post(f"/api/rooms/{room['id']}/join")
    assert res.status_code == 409
    assert res.get_json()['code'] == 'room_full'


def test_move_payload_validation(user_client):
    alice, bob = user_client('alice'), user_client('bob')
    room = _create_room(alice)
    game = bob.post(f"/api/rooms/{room['id']}/join").get_json()['game']

    res = alice.post(f"/api/games/{game['id']}/move", json={'row': 3, 'col': 0})
    assert res.status_code == 400
    assert res.get_json()['code'] == 'out_of_bounds'

    res = alice.post(f"/api/games/{game['id']}/move", json={'row': '1', 'col': 0})
    assert res.status_code == 400
    assert res.get_json()['code'] == 'validation_error'

    res = alice.post(f"/api/games/{game['id']}/move", json={'row': True, 'col': 0})
    assert res.status_code == 400

    res = alice.post('/api/games/999/move', json={'row': 0, 'col': 0})
    assert res.status_code == 404

    board = alice.get(f"/api/games/{game['id']}").get_json()['board']
    assert board == [['', '', ''], ['', '', ''], ['', '', '']]


def test_cell_occupied_over_http(user_client):
    alice, bob = user_client('alice'), user_client('bob')
    room = _create_room(alice)
    game = bob.post(f"/api/rooms/{room['id']}/join").get_json()['game']
    alice.post(f"/api/games/{game['id']}/move", json={'row': 1, 'col': 1})
    res = bob.post(f"/api/games/{game['id']}/move", json={'row': 1, 'col': 1})
    assert res.status_code == 409
    assert res.get_json()['code'] == 'cell_occupied'


def test_leave_room(user_client, client):
    alice, bob = user_client('alice'), user_client('bob')
    room = _create_room(alice)
    bob.post(f"/api/rooms/{room['id']}/join")
    res = bob.post(f"/api/rooms/{room['id']}/leave")
    assert res.status_code == 200
    data = client.get(f"/api/rooms/{room['id']}").get_json()
    assert data['current_players'] == 1
    assert data['status'] == 'active'


def test_quick_match_creates_then_joins(user_client):
    alice, bob = user_client('alice'), user_client('bob')
    created = alice.post('/api/rooms/quick-match')
    assert created.status_code == 201
    room = created.get_json()['room']
    assert room['tags'] == ['casual']

    matched = bob.post('/api/rooms/quick-match')
    assert matched.status_code == 200
    body = matched.get_json()
    assert body['room']['id'] == room['id']
    assert body['game']['player1_id'] == alice.user_id


def test_quick_match_ignores_private_rooms(user_client):
    alice, bob = user_client('alice'), user_client('bob')
    private = _create_room(alice, 'Friends only', is_private=True)
    res = bob.post('/api/rooms/quick-match')
    assert res.status_code == 201
    assert res.get_json()['room']['id'] != private['id']


def test_room_messages(user_client, client):
    alice = user_client('alice')
    room = _create_room(alice)
    for text in ('hi', 'anyone?'):
        assert alice.post(f"/api/rooms/{room['id']}/messages", json={'content': text}).status_code == 201
    assert alice.post(f"/api/rooms/{room['id']}/messages", json={'content': '  '}).status_code == 400

    messages = client.get(f"/api/rooms/{room['id']}/messages").get_json()
    assert [m['content'] for m in messages] == ['hi', 'anyone?']
    assert messages[0]['username'] == 'alice'


def _play_win(winner, loser, room_id):
    game = loser.post(f"/api/rooms/{room_id}/join").get_json()['game']
    for player, row, col in [(winner, 0, 0), (loser, 1, 1), (winner, 0, 1), (loser, 2, 2), (winner, 0, 2)]:
        res = player.post(f"/api/games/{game['id']}/move", json={'row': row, 'col': col})
        assert res.status_code == 200, res.get_json()
    return game


def test_leaderboard_and_user_games(user_client, client):
    alice, bob = user_client('alice'), user_client('bob')
    first = _play_win(alice, bob, _create_room(alice, 'One')['id'])
    second = _play_win(alice, bob, _create_room(alice, 'Two')['id'])

    board = client.get('/api/leaderboard').get_json()
    assert board[0]['username'] == 'alice'
    assert board[0]['wins'] == 2
    assert board[0]['current_streak'] == 2
    assert board[1]['username'] == 'bob'
    assert board[1]['losses'] == 2

    mine = bob.get('/api/user/games').get_json()
    assert [g['id'] for g in mine] == [second['id'], first['id']]


def test_quick_match_does_not_match_caller_with_own_room(user_client):
    alice, bob = user_client('alice'), user_client('bob')
    waiting = _create_room(bob, 'Waiting')
    _create_room(alice, 'Newest')
    res = alice.post('/api/rooms/quick-match')
    assert res.status_code == 200
    body = res.get_json()
    assert body['room']['id'] == waiting['id']
    assert body['game']['player1_id'] == bob.user_id
