from gevent import monkey
monkey.patch_all()

from flask import Flask, request, jsonify, abort
from flask_socketio import SocketIO, join_room, leave_room, emit
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from ultimate.ai import AI_THINK_DELAY
from ultimate.config import GameConfig, REMOTE
from ultimate.errors import ConfigError
from ultimate.session import GameSession, RenderSink
from ultimate.sync import MemoryMoveLog, parse_entry
from ultimate.tasks import GeventQueue, InlineQueue
import random, string, os

app = Flask(__name__)
app.config['SECRET_KEY'] = os.environ.get('SECRET_KEY', 'a_secret_key')
# ── Database path ─────────────────────────────────────────────────────────────
# The database only mirrors the move logs of rooms that are still open, so a
# restarted server can rebuild a room when its players reconnect.
# DATABASE_URL picks an external DB; otherwise SQLite in an 'instance' folder.
_db_url = os.environ.get('DATABASE_URL', None)
if _db_url and _db_url.startswith('postgres://'):
    # SQLAlchemy 1.4+ requires postgresql:// not postgres://
    _db_url = _db_url.replace('postgres://', 'postgresql://', 1)
if not _db_url:
    _data_dir = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'instance')
    os.makedirs(_data_dir, exist_ok=True)
    _db_url = f'sqlite:///{os.path.join(_data_dir, "db.sqlite3")}'
app.config['SQLALCHEMY_DATABASE_URI'] = _db_url
app.config['AI_THINK_DELAY'] = float(os.environ.get('AI_THINK_DELAY', AI_THINK_DELAY))
app.config['TASK_QUEUE']     = os.environ.get('TASK_QUEUE', 'gevent')   # 'gevent' | 'inline'
db = SQLAlchemy(app)
migrate = Migrate(app, db)
socketio = SocketIO(app, async_mode='gevent')

sessions  = {}   # sid  -> GameSession
room_logs = {}   # room -> RoomLog
room_creators = {}   # room -> sid of its creator, until someone starts in it

# ── Models ───────────────────────────────────────────────────────────────────
class MoveEntry(db.Model):
    id        = db.Column(db.Integer, primary_key=True)
    room      = db.Column(db.String(8), nullable=False, index=True)
    seq       = db.Column(db.Integer, nullable=False)
    board     = db.Column(db.Integer, nullable=False)
    cell      = db.Column(db.Integer, nullable=False)
    symbol    = db.Column(db.String(1), nullable=False)
    origin_id = db.Column(db.String(32), nullable=False)
    timestamp = db.Column(db.DateTime, server_default=db.func.now())

    def to_entry(self):
        return {"subBoardIndex": self.board, "cellIndex": self.cell,
                "symbol": self.symbol, "originId": self.origin_id}

class RoomLog(MemoryMoveLog):
    """A room's move log, mirrored row by row into move_entry."""
    def __init__(self, room):
        rows = (MoveEntry.query.filter_by(room=room)
                .order_by(MoveEntry.seq, MoveEntry.id).all())
        super().__init__([r.to_entry() for r in rows])
        self.room = room

    def append(self, entry):
        b, c, symbol, origin = parse_entry(entry)
        # The slot is taken before the commit, which can yield to another append.
        seq = len(self.entries)
        super().append(entry)
        db.session.add(MoveEntry(room=self.room, seq=seq, board=b,
                                 cell=c, symbol=symbol, origin_id=origin))
        db.session.commit()

# ── Render sink ──────────────────────────────────────────────────────────────
class SocketSink(RenderSink):
    """Draws on one browser by emitting to its sid."""
    def __init__(self, sid): self.sid = sid
    def _emit(self, event, data): socketio.emit(event, data, to=self.sid)

    def mark_cell(self, board, cell, symbol):
        self._emit('cell', {'board': board, 'cell': cell, 'symbol': symbol})
    def clear_cell(self, board, cell):
        self._emit('clear', {'board': board, 'cell': cell})
    def mark_board(self, board, outcome):
        self._emit('board', {'board': board, 'outcome': outcome})
    def mark_playable(self, boards):
        self._emit('playable', {'boards': boards})
    def show_status(self, text):
        self._emit('status', {'text': text})
    def set_undo_enabled(self, enabled):
        self._emit('undo', {'enabled': enabled})
    def highlight_last_move(self, last_move):
        self._emit('lastMove', {'move': last_move})

# ── Helpers ───────────────────────────────────────────────────────────────────
def new_room(): return ''.join(random.choices(string.digits, k=5))

def make_queue():
    if app.config['TASK_QUEUE'] == 'inline': return InlineQueue()
    return GeventQueue(context=app.app_context)

def get_room_log(room):
    """Open rooms first, then rooms that only survive in the database."""
    if not room: return None
    log = room_logs.get(room)
    if log is None and MoveEntry.query.filter_by(room=room).first():
        log = room_logs[room] = RoomLog(room)
        app.logger.info("room %s restored with %d moves", room, len(log))
    return log

def close_room_if_empty(room):
    if any(s.config.room == room for s in sessions.values()): return
    room_logs.pop(room, None)
    room_creators.pop(room, None)
    MoveEntry.query.filter_by(room=room).delete()
    db.session.commit()
    app.logger.info("room %s closed", room)

def drop_session(sid, keep_room=None):
    s = sessions.pop(sid, None)
    if not s: return
    s.close()
    if s.config.mode == REMOTE:
        leave_room(s.config.room, sid=sid)
        if s.config.room != keep_room: close_room_if_empty(s.config.room)

def close_unjoined_rooms(sid):
    """Rooms a client created that nobody started in go with the client."""
    for room in [r for r, owner in room_creators.items() if owner == sid]:
        close_room_if_empty(room)

# ── Routes ───────────────────────────────────────────────────────────────────
@app.route('/')
def index():
    return jsonify({"service": "ultimate-ttt", "rooms": sorted(room_logs),
                    "sessions": len(sessions)})

@app.route('/rooms/<room>')
def room_moves(room):
    log = get_room_log(room)
    if log is None: abort(404)
    return jsonify({"room": room, "moves": log.entries})

# ── SocketIO Events ───────────────────────────────────────────────────────────
@socketio.on("create")
def create(data=None):
    # A fresh code replaces the client's earlier unused one.
    close_unjoined_rooms(request.sid)
    room = new_room()
    while room in room_logs or MoveEntry.query.filter_by(room=room).first():
        room = new_room()
    room_logs[room] = RoomLog(room)
    room_creators[room] = request.sid
    emit("created", room)

@socketio.on("start")
def start(data=None):
    sid = request.sid
    try:
        config = GameConfig.from_dict(data or {})
    except ConfigError as e:
        emit("error", {"error": str(e)}); return
    log = None
    if config.mode == REMOTE:
        log = get_room_log(config.room)
        if log is None: emit("invalid"); return
    drop_session(sid, keep_room=config.room)
    if config.mode == REMOTE:
        join_room(config.room)
        room_creators.pop(config.room, None)
    sessions[sid] = GameSession(config, SocketSink(sid), queue=make_queue(), log=log,
                                think_delay=app.config['AI_THINK_DELAY'])
    app.logger.debug("session %s started: %s", sid, config)
    emit("state", sessions[sid].state())

@socketio.on("move")
def move(data):
    session = sessions.get(request.sid)
    if not session: return
    try:
        b, c = int(data["board"]), int(data["cell"])
    except (KeyError, TypeError, ValueError):
        return
    session.queue.submit(lambda: session.click(b, c))

@socketio.on("undo")
def undo(data=None):
    session = sessions.get(request.sid)
    if not session: return
    session.queue.submit(session.undo)

@socketio.on("state")
def state(data=None):
    session = sessions.get(request.sid)
    if session: emit("state", session.state())

@socketio.on("reset")
def reset(data=None):
    drop_session(request.sid)
    close_unjoined_rooms(request.sid)
    emit("reset")

@socketio.on('disconnect')
def disconnect(reason=None):
    drop_session(request.sid)
    close_unjoined_rooms(request.sid)

def _ensure_db():
    with app.app_context():
        db.create_all()

_ensure_db()

if __name__ == "__main__":
    socketio.run(app, debug=True)
