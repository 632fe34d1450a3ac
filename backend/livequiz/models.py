from livequiz import db
import json
import string
import random
import time

ACTIVATION_TYPES = ('multiple_choice', 'text_answer', 'poll')
POLL_STATES = ('pending', 'voting', 'closed')


def generate_room_code(length=4):
    """Generate a unique, short room code."""
    while True:
        code = ''.join(random.choices(string.ascii_uppercase + string.digits, k=length))
        if not Room.query.filter_by(room_code=code).first():
            return code


class Room(db.Model):
    __tablename__ = 'room'
    id = db.Column(db.Integer, primary_key=True)
    room_code = db.Column(db.String(4), unique=True, index=True)
    name = db.Column(db.String(128), nullable=True)
    created_at = db.Column(db.Float, default=time.time)
    players = db.relationship('Player', back_populates='room', lazy='dynamic')
    activations = db.relationship('Activation', back_populates='room', lazy='dynamic')

    def __init__(self, **kwargs):
        super(Room, self).__init__(**kwargs)
        if not self.room_code:
            self.room_code = generate_room_code()

    def to_dict(self):
        return {
            'id': self.id,
            'room_code': self.room_code,
            'name': self.name,
        }


class Player(db.Model):
    __tablename__ = 'player'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(64), nullable=False)
    room_id = db.Column(db.Integer, db.ForeignKey('room.id'), nullable=False, index=True)
    score = db.Column(db.Integer, default=0, nullable=False)
    # Running PlayerStats; updated in place by a single UPDATE per counted answer
    total_points = db.Column(db.Integer, default=0, nullable=False)
    correct_answers = db.Column(db.Integer, default=0, nullable=False)
    total_answers = db.Column(db.Integer, default=0, nullable=False)
    average_response_time_ms = db.Column(db.Float, default=0.0, nullable=False)
    created_at = db.Column(db.Float, default=time.time)
    room = db.relationship('Room', back_populates='players')

    def stats_dict(self):
        return {
            'totalPoints': self.total_points or 0,
            'correctAnswers': self.correct_answers or 0,
            'totalAnswers': self.total_answers or 0,
            'averageResponseTimeMs': self.average_response_time_ms or 0.0,
        }

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'room_id': self.room_id,
            'score': self.score or 0,
            'stats': self.stats_dict(),
        }


class Activation(db.Model):
    __tablename__ = 'activation'
    id = db.Column(db.Integer, primary_key=True)
    room_id = db.Column(db.Integer, db.ForeignKey('room.id'), nullable=False, index=True)
    type = db.Column(db.String(32), nullable=False)  # multiple_choice, text_answer, poll
    question = db.Column(db.Text, nullable=True)
    correct_answer = db.Column(db.Text, nullable=True)
    exact_answer = db.Column(db.Text, nullable=True)
    options_json = db.Column('options', db.Text, nullable=True)  # JSON-encoded list of {id, text}
    poll_state = db.Column(db.String(16), default='pending', nullable=False)  # pending, voting, closed
    time_limit = db.Column(db.Integer, nullable=True)
    timer_started_at = db.Column(db.Float, nullable=True)
    created_at = db.Column(db.Float, default=time.time)
    room = db.relationship('Room', back_populates='activations')
    responses = db.relationship('Response', back_populates='activation', lazy='dynamic')

    @property
    def options(self):
        try:
            return json.loads(self.options_json) if self.options_json else []
        except ValueError:
            return []

    @options.setter
    def options(self, value):
        self.options_json = json.dumps(list(value or []))

    def option_by_id(self, option_id):
        for option in self.options:
            if option.get('id') == option_id:
                return option
        return None

    @property
    def voting_deadline(self):
        if self.time_limit and self.timer_started_at:
            return self.timer_started_at + self.time_limit
        return None

    def to_dict(self, include_answers=False):
        payload = {
            'id': self.id,
            'room_id': self.room_id,
            'type': self.type,
            'question': self.question,
            'options': self.options,
            'poll_state': self.poll_state,
            'time_limit': self.time_limit,
            'timer_started_at': self.timer_started_at,
            'voting_deadline': self.voting_deadline,
        }
        if include_answers:
            payload['correct_answer'] = self.correct_answer
            payload['exact_answer'] = self.exact_answer
        return payload


class Response(db.Model):
    """One participant's vote or answer; at most one per (activation, player)."""
    __tablename__ = 'response'
    __table_args__ = (
        db.UniqueConstraint('activation_id', 'player_id', name='uq_response_activation_player'),
    )
    id = db.Column(db.Integer, primary_key=True)
    activation_id = db.Column(db.Integer, db.ForeignKey('activation.id'), nullable=False, index=True)
    player_id = db.Column(db.Integer, db.ForeignKey('player.id'), nullable=False, index=True)
    option_id = db.Column(db.String(64), nullable=True)
    option_text = db.Column(db.Text, nullable=True)
    answer = db.Column(db.Text, nullable=True)
    is_correct = db.Column(db.Boolean, nullable=True)
    points_awarded = db.Column(db.Integer, default=0, nullable=False)
    time_taken_ms = db.Column(db.Float, nullable=True)
    submitted_at = db.Column(db.Float, default=time.time)

    activation = db.relationship('Activation', back_populates='responses')
    player = db.relationship('Player')

    def to_dict(self):
        return {
            'id': self.id,
            'activation_id': self.activation_id,
            'player_id': self.player_id,
            'option_id': self.option_id,
            'option_text': self.option_text,
            'answer': self.answer,
            'is_correct': self.is_correct,
            'points_awarded': self.points_awarded,
            'time_taken_ms': self.time_taken_ms,
            'submitted_at': self.submitted_at,
        }
