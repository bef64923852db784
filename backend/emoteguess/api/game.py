from flask import Blueprint, jsonify, request
from emoteguess.errors import EmoteGuessError
from emoteguess.services.game.controller import get_controller
from emoteguess.services.game.types import SequenceExhausted


game = Blueprint('game', __name__)


@game.errorhandler(EmoteGuessError)
def handle_game_error(exc):
    return jsonify({'error': str(exc)}), exc.status_code


@game.route('/state', methods=['GET'])
def get_state():
    return jsonify(get_controller().state())


@game.route('/load', methods=['POST'])
def load_channel():
    """
    Starts loading a channel's 7TV emotes and connects to its chat.
    Progress and failures arrive as `status` socket events.
    """
    data = request.get_json(silent=True) or {}
    controller = get_controller()
    token = controller.load_channel_in_background(data.get('channel'))
    payload = controller.state()
    payload['load_token'] = token
    return jsonify(payload), 202


@game.route('/manual', methods=['POST'])
def load_manual():
    """
    Loads a pasted emote list: either `emotes` (a JSON array) or `payload`
    (the raw JSON text).
    """
    data = request.get_json(silent=True) or {}
    payload = data.get('emotes') if 'emotes' in data else data.get('payload')
    if payload is None:
        return jsonify({'error': 'emotes or payload is required'}), 400
    controller = get_controller()
    controller.load_manual(payload)
    return jsonify(controller.state()), 201


@game.route('/guess', methods=['POST'])
def submit_guess():
    data = request.get_json(silent=True) or {}
    controller = get_controller()
    verdict = controller.guess_local(data.get('text'))
    payload = verdict.to_dict()
    payload['state'] = controller.state()
    return jsonify(payload)


@game.route('/skip', methods=['POST'])
def skip_round():
    controller = get_controller()
    if not controller.skip():
        return jsonify({'error': 'No open round to skip'}), 400
    return jsonify(controller.state())


@game.route('/next', methods=['POST'])
def next_round():
    controller = get_controller()
    result = controller.advance()
    if result is None:
        return jsonify({'error': 'Nothing loaded yet'}), 400
    payload = controller.state()
    if isinstance(result, SequenceExhausted):
        payload['final_score'] = result.final_score
    return jsonify(payload)


@game.route('/reshuffle', methods=['POST'])
def reshuffle():
    controller = get_controller()
    controller.reshuffle()
    return jsonify(controller.state())


@game.route('/announcer', methods=['PUT'])
def set_announcer():
    """
    Stores the bot identity used to announce winners in chat.
    """
    data = request.get_json(silent=True) or {}
    controller = get_controller()
    controller.set_announcer(data.get('nick'), data.get('token'))
    return jsonify({'announcer': data.get('nick').strip()})


@game.route('/announcer', methods=['DELETE'])
def clear_announcer():
    removed = get_controller().clear_announcer()
    return jsonify({'removed': removed})
