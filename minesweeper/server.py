"""Flask server exposing the Minesweeper game to a browser."""
import asyncio
import logging
import uuid
from datetime import datetime

from flask import Flask, jsonify, request
from flask_cors import CORS
from temporalio.client import Client, WorkflowUpdateFailedError
from temporalio.service import RPCError

from minesweeper.config import get_temporal_client, load_settings
from minesweeper.store import JsonFileStore, LocalPersistence
from minesweeper.types import Difficulty, GameSnapshot, MoveRequest, NewGameRequest
from minesweeper.workflows import MinesweeperWorkflow

logger = logging.getLogger(__name__)

app = Flask(__name__)
CORS(app)

# Global client reference
temporal_client: Client | None = None

# Browser-facing names for the two cell interactions
ACTION_ALIASES = {
    'reveal': 'reveal',
    'activate': 'reveal',
    'flag': 'flag',
    'alternate': 'flag',
}


def get_persistence() -> LocalPersistence:
    return LocalPersistence(JsonFileStore(load_settings().data_dir))


def serialize_game_state(snapshot: GameSnapshot) -> dict:
    """Convert a game snapshot to the JSON shape the browser draws from."""
    cells = [
        [
            {
                'row': cell.row,
                'col': cell.col,
                'isMine': cell.is_mine,
                'isRevealed': cell.is_revealed,
                'isFlagged': cell.is_flagged,
                'neighborMines': cell.neighbor_mines,
            }
            for cell in board_row
        ]
        for board_row in snapshot.cells
    ]
    return {
        'status': snapshot.status.value,
        'difficulty': snapshot.difficulty.value,
        'board': {
            'cells': cells,
            'rows': snapshot.rows,
            'cols': snapshot.cols,
            'mineCount': snapshot.total_mines,
        },
        'minesRemaining': snapshot.mines_remaining,
        'elapsed': snapshot.elapsed,
        'hintsRemaining': snapshot.hints_remaining,
        'events': [event.value for event in snapshot.events],
        'message': snapshot.message,
        'stats': snapshot.stats.to_record(),
        'highscores': snapshot.highscores.to_record(),
    }


def parse_difficulty(data: dict, default=None):
    value = data.get('difficulty')
    if value is None:
        return default
    return Difficulty.parse(value)


async def query_with_retry(handle, max_retries=5):
    """Query with retry logic for workflow initialization."""
    for i in range(max_retries):
        try:
            return await handle.query(MinesweeperWorkflow.get_game_state_query)
        except Exception as error:
            if i < max_retries - 1:
                logger.info(f"Query not ready yet, retrying in {(i + 1) * 100}ms...")
                await asyncio.sleep((i + 1) * 0.1)
                continue
            raise error


@app.route('/api/saved-session', methods=['GET'])
def get_saved_session():
    """Tell the browser whether there is a game to offer for resuming."""
    session = get_persistence().load_session()
    return jsonify({
        'hasSavedSession': session is not None,
        'difficulty': session.difficulty.value if session else None,
    })


@app.route('/api/stats', methods=['GET'])
def get_stats():
    persistence = get_persistence()
    return jsonify({
        'stats': persistence.load_stats().to_record(),
        'highscores': persistence.load_highscores().to_record(),
    })


@app.route('/api/games', methods=['POST'])
def create_game():
    """Create a new game, or resume the saved one."""
    data = request.get_json(silent=True) or {}
    try:
        new_game = NewGameRequest(
            difficulty=parse_difficulty(data, Difficulty.BEGINNER),
            resume=bool(data.get('resume', False)),
        )
    except ValueError as error:
        return jsonify({'error': str(error)}), 400

    game_id = str(uuid.uuid4())

    async def start_workflow():
        handle = await temporal_client.start_workflow(
            MinesweeperWorkflow.run,
            args=[game_id, new_game],
            id=game_id,
            task_queue=load_settings().task_queue,
        )
        return await query_with_retry(handle)

    try:
        snapshot = asyncio.run(start_workflow())
    except Exception as error:
        logger.error(f"Error creating game: {error}")
        return jsonify({'error': 'Failed to create game'}), 500

    return jsonify({'gameId': game_id, 'gameState': serialize_game_state(snapshot)})


@app.route('/api/games/<game_id>', methods=['GET'])
def get_game_state(game_id):
    """Get game state."""
    try:
        snapshot = asyncio.run(query_with_retry(temporal_client.get_workflow_handle(game_id)))
    except Exception as error:
        logger.error(f"Error getting game state: {error}")
        return jsonify({'error': 'Game not found'}), 404
    return jsonify({'gameState': serialize_game_state(snapshot)})


def run_update(game_id, update, *args):
    """Execute a workflow update and render the returned snapshot."""
    async def execute():
        handle = temporal_client.get_workflow_handle(game_id)
        return await handle.execute_update(update, *args)

    try:
        snapshot = asyncio.run(execute())
    except WorkflowUpdateFailedError as error:
        logger.warning(f"Update {update.__name__} rejected for game {game_id}: {error.cause}")
        return jsonify({'error': str(error.cause or error)}), 400
    except RPCError as error:
        logger.error(f"Game {game_id} unavailable: {error}")
        return jsonify({'error': 'Game not found'}), 404
    except Exception as error:
        logger.error(f"Error running {update.__name__} for game {game_id}: {error}")
        return jsonify({'error': 'Failed to update game'}), 500
    return jsonify({'gameState': serialize_game_state(snapshot)})


@app.route('/api/games/<game_id>/moves', methods=['POST'])
def make_move(game_id):
    """Make a move."""
    data = request.get_json(silent=True) or {}

    row, col = data.get('row'), data.get('col')
    action = ACTION_ALIASES.get(data.get('action'))
    if not isinstance(row, int) or not isinstance(col, int) or action is None:
        return jsonify({'error': 'Invalid move request'}), 400

    return run_update(game_id, MinesweeperWorkflow.make_move_update,
                      MoveRequest(row=row, col=col, action=action))


@app.route('/api/games/<game_id>/safe-click', methods=['POST'])
def safe_click(game_id):
    """Spend one of the safe-click hints."""
    return run_update(game_id, MinesweeperWorkflow.safe_click_update)


@app.route('/api/games/<game_id>/restart', methods=['POST'])
def restart_game(game_id):
    """Restart game."""
    data = request.get_json(silent=True) or {}
    try:
        difficulty = parse_difficulty(data)
    except ValueError as error:
        return jsonify({'error': str(error)}), 400
    return run_update(game_id, MinesweeperWorkflow.restart_game_update, difficulty)


@app.route('/api/games/<game_id>/close', methods=['POST'])
def close_game(game_id):
    """Close game."""
    async def send_close():
        handle = temporal_client.get_workflow_handle(game_id)
        await handle.signal(MinesweeperWorkflow.close_game_signal)

    try:
        asyncio.run(send_close())
    except Exception as error:
        logger.error(f"Error closing game: {error}")
        return jsonify({'error': 'Game not found'}), 404
    return '', 204


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
    logging.basicConfig(level=logging.INFO)
    try:
        asyncio.run(initialize_client())

        port = load_settings().port
        logger.info(f"Minesweeper server running on http://localhost:{port}")
        logger.info("Make sure to start the Temporal worker in another terminal: python -m minesweeper.worker")

        app.run(host='0.0.0.0', port=port, debug=False)

    except Exception as error:
        logger.error(f"Failed to start server: {error}")
        exit(1)


if __name__ == "__main__":
    main()
