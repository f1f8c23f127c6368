"""Flask server for the Pairs memory game."""
import asyncio
import logging
import os
import uuid
from datetime import datetime

from flask import Flask, jsonify, request
from flask_cors import CORS
from temporalio.client import Client

from pairs.config import TASK_QUEUE, get_temporal_client, load_game_config
from pairs.types import ACTIONS, PlayerAction
from pairs.workflows import MemoryGameWorkflow

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = Flask(__name__)
CORS(app)

# Global client reference
temporal_client: Client | None = None

# camelCase request keys -> GameConfig fields
CONFIG_KEYS = {
    'minBoardSize': 'min_board_size',
    'maxBoardSize': 'max_board_size',
    'defaultBoardSize': 'default_board_size',
    'resizeStep': 'resize_step',
    'gameOverDelayMs': 'game_over_delay_ms',
    'hideDelayMs': 'hide_delay_ms',
}


def get_attr(obj, key):
    """Get attribute from either dict or object."""
    if isinstance(obj, dict):
        return obj.get(key)
    return getattr(obj, key, None)


def serialize_config(config):
    if not config:
        return None
    return {camel: get_attr(config, snake) for camel, snake in CONFIG_KEYS.items()}


def serialize_game_view(view):
    """Convert a game view to a JSON-serializable format."""
    if not view:
        return None

    status = get_attr(view, 'status')
    if hasattr(status, 'value'):
        status = status.value
    status_str = str(status).upper() if status else 'IN_PROGRESS'

    return {
        'id': get_attr(view, 'id'),
        'boardSize': get_attr(view, 'board_size'),
        'tiles': get_attr(view, 'tiles') or [],
        'status': status_str,
        'startTime': get_attr(view, 'start_time'),
        'revealedCount': get_attr(view, 'revealed_count') or 0,
        'firstChoice': get_attr(view, 'first_choice'),
        'elapsedSeconds': get_attr(view, 'elapsed_seconds'),
        'message': get_attr(view, 'message'),
        'config': serialize_config(get_attr(view, 'config')),
    }


def parse_config(config_data):
    """Turn a camelCase config payload into a GameConfig. Raises ValueError."""
    if config_data is None:
        config_data = {}
    if not isinstance(config_data, dict):
        raise ValueError("config must be an object")
    overrides = {}
    for key, value in config_data.items():
        if key not in CONFIG_KEYS:
            raise ValueError(f"Unknown config option: {key}")
        overrides[CONFIG_KEYS[key]] = value
    return load_game_config(overrides)


def parse_action(data):
    """Validate an action payload. Raises ValueError."""
    if not isinstance(data, dict) or data.get('action') not in ACTIONS:
        raise ValueError("Invalid action request")
    action = PlayerAction(action=data['action'])
    if action.action == 'reveal':
        row, col = data.get('row'), data.get('col')
        if not isinstance(row, int) or not isinstance(col, int) or isinstance(row, bool) or isinstance(col, bool):
            raise ValueError("reveal needs integer row and col")
        action.row, action.col = row, col
    return action


async def query_with_retry(handle, query_name, max_retries=5):
    """Query with retry logic for workflow initialization."""
    for i in range(max_retries):
        try:
            return await handle.query(query_name)
        except Exception as error:
            if i < max_retries - 1:
                logger.info(f"Query not ready yet, retrying in {(i + 1) * 100}ms...")
                await asyncio.sleep((i + 1) * 0.1)
                continue
            raise error


@app.route('/api/games', methods=['POST'])
def create_game():
    """Create a new game."""
    data = request.get_json(silent=True) or {}
    try:
        if not isinstance(data, dict):
            raise ValueError("body must be an object")
        config = parse_config(data.get('config'))
    except ValueError as error:
        return jsonify({'error': f'Invalid game configuration: {error}'}), 400

    game_id = str(uuid.uuid4())

    try:
        async def start_workflow():
            await temporal_client.start_workflow(
                MemoryGameWorkflow.run,
                args=[game_id, config],
                id=game_id,
                task_queue=TASK_QUEUE,
            )

            handle = temporal_client.get_workflow_handle(game_id)
            return await query_with_retry(handle, "get_game_state_query")

        game_view = asyncio.run(start_workflow())
        return jsonify({'gameState': serialize_game_view(game_view)}), 201

    except Exception as error:
        logger.error(f"Error creating game: {error}")
        return jsonify({'error': 'Failed to create game'}), 500


@app.route('/api/games/<game_id>', methods=['GET'])
def get_game_state(game_id):
    """Get game state."""
    try:
        async def query_game():
            handle = temporal_client.get_workflow_handle(game_id)
            return await query_with_retry(handle, "get_game_state_query")

        game_view = asyncio.run(query_game())
        return jsonify({'gameState': serialize_game_view(game_view)})

    except Exception as error:
        logger.error(f"Error getting game state: {error}")
        return jsonify({'error': 'Game not found'}), 404


@app.route('/api/games/<game_id>/actions', methods=['POST'])
def act(game_id):
    """Reveal a tile, resize, reset or start a new game."""
    try:
        action = parse_action(request.get_json(silent=True))
    except ValueError as error:
        return jsonify({'error': str(error)}), 400

    try:
        async def execute_action():
            handle = temporal_client.get_workflow_handle(game_id)
            return await handle.execute_update("player_action_update", action)

        game_view = asyncio.run(execute_action())
        return jsonify({'gameState': serialize_game_view(game_view)})

    except Exception as error:
        logger.error(f"Error applying {action.action} to game {game_id}: {error}")
        return jsonify({'error': 'Failed to apply action'}), 500


@app.route('/api/games/<game_id>/close', methods=['POST'])
def close_game(game_id):
    """Close a game; its workflow completes."""
    try:
        async def send_close():
            handle = temporal_client.get_workflow_handle(game_id)
            await handle.signal("close_game_signal")

        asyncio.run(send_close())
        return jsonify({'id': game_id, 'status': 'CLOSING'}), 202

    except Exception as error:
        logger.error(f"Error closing game {game_id}: {error}")
        return jsonify({'error': 'Failed to close game'}), 500


@app.route('/api/health', methods=['GET'])
def health_check():
    """Health check endpoint."""
    return jsonify({
        'status': 'OK',
        'timestamp': datetime.now().isoformat()
    })


async def initialize_client():
    """Initialize Temporal client."""
    global temporal_client
    temporal_client = await get_temporal_client()
    logger.info("Connected to Temporal server")


def main():
    """Start the Flask server."""
    try:
        asyncio.run(initialize_client())

        port = int(os.getenv("PORT", 3000))
        logger.info(f"Pairs server running on http://localhost:{port}")
        logger.info("Make sure to start the Temporal worker in another terminal: python -m pairs.worker")

        app.run(host='0.0.0.0', port=port, debug=False)

    except Exception as error:
        logger.error(f"Failed to start server: {error}")
        exit(1)


if __name__ == "__main__":
    main()
