"""
Pytest Configuration for ExamGuard Tests
"""
from uuid import uuid4

import pytest

from examguard import create_app, db
from examguard.models.exam import Exam, Question
from examguard.utils.jwt_handler import create_access_token

TEST_JWT_SECRET = 'test-jwt-secret-key-32-chars-min'


@pytest.fixture(scope='function')
def app():
    """Create application with a fresh in-memory database"""
    test_config = {
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'SECRET_KEY': 'test-secret-key',
        'JWT_SECRET': TEST_JWT_SECRET,
    }

    app = create_app(test_config)

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Test client"""
    return app.test_client()


@pytest.fixture(scope='function')
def make_headers(app):
    """Build bearer headers for an arbitrary identity"""
    def _make(user_id, role='student'):
        token = create_access_token(user_id, role, secret=app.config['JWT_SECRET'])
        return {'Authorization': f'Bearer {token}'}
    return _make


@pytest.fixture
def teacher_id():
    return str(uuid4())


@pytest.fixture
def student_id():
    return str(uuid4())


@pytest.fixture
def teacher_headers(make_headers, teacher_id):
    return make_headers(teacher_id, 'teacher')


@pytest.fixture
def student_headers(make_headers, student_id):
    return make_headers(student_id, 'student')


@pytest.fixture
def make_question(app, teacher_id):
    """Persist a question with a single correct option"""
    def _make(prompt='2 + 2 = ?', correct='4', incorrect=('3', '5')):
        question = Question(
            prompt=prompt,
            correct_option=correct,
            incorrect_options=list(incorrect),
            created_by=teacher_id
        )
        db.session.add(question)
        db.session.commit()
        return question
    return _make


@pytest.fixture
def make_exam(app, teacher_id, make_question):
    """Persist an exam whose question i has correct option 'right-i'"""
    def _make(question_count=4, duration_minutes=30, start_time=None, end_time=None,
              is_proctored=True, owner=None):
        questions = [
            make_question(
                prompt=f'Question {i}',
                correct=f'right-{i}',
                incorrect=[f'wrong-{i}-a', f'wrong-{i}-b']
            )
            for i in range(question_count)
        ]
        exam = Exam(
            title='Midterm',
            description='Chapters 1-4',
            teacher_id=owner or teacher_id,
            duration_minutes=duration_minutes,
            start_time=start_time,
            end_time=end_time,
            is_proctored=is_proctored
        )
        exam.set_questions(questions)
        db.session.add(exam)
        db.session.commit()
        return exam
    return _make


@pytest.fixture
def exam(make_exam):
    return make_exam()
