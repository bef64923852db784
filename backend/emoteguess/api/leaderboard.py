from flask import Blueprint, jsonify, request
from emoteguess.errors import EmoteGuessError
from emoteguess.services.game.controller import get_controller
from emoteguess.services.game.ledger import scope_key


leaderboard = Blueprint('leaderboard', __name__)


@leaderboard.errorhandler(EmoteGuessError)
def handle_leaderboard_error(exc):
    return jsonify({'error': str(exc)}), exc.status_code


@leaderboard.route('', methods=['GET'])
def get_leaderboard():
    """
    Top guessers for `scope` (defaults to the current session's scope).
    """
    controller = get_controller()
    scope = request.args.get('scope') or controller.scope_for(controller.session)
    n = request.args.get('n', type=int)
    return jsonify({'scope': scope_key(scope), 'entries': controller.leaderboard(n=n, scope=scope)})


@leaderboard.route('', methods=['DELETE'])
def clear_leaderboard():
    controller = get_controller()
    scope = request.args.get('scope') or controller.scope_for(controller.session)
    deleted = controller.clear_leaderboard(scope)
    return jsonify({'scope': scope_key(scope), 'deleted': deleted})
