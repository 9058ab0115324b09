import pytest

from learnledger import create_app, db
from learnledger.profiles import register_profile
from learnledger.projects import create_project
from learnledger.utils import atomic

COMPANY = '0x' + 'aa' * 20
FREELANCER = '0x' + 'bb' * 20
OTHER = '0x' + 'cc' * 20
PASSWORD = 'hanoihue'


@pytest.fixture
def app():
    app = create_app('learnledger.config.TestingConfig')
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def ctx(app):
    """Run the test body inside an application context, for calling stores directly."""
    with app.app_context():
        yield app
        db.session.remove()


@pytest.fixture
def client(app):
    return app.test_client()


def register(client, wallet, role, skills=None):
    response = client.post('/auth/register', json={
        'walletAddress': wallet,
        'role': role,
        'password': PASSWORD,
        'skills': skills,
    })
    assert response.status_code == 201, response.get_json()
    return response


def login(client, wallet):
    response = client.post('/auth/login', json={'walletAddress': wallet, 'password': PASSWORD})
    assert response.status_code == 200, response.get_json()
    return {'Authorization': f"Bearer {response.get_json()['access_token']}"}


def register_and_login(client, wallet, role, skills=None):
    register(client, wallet, role, skills)
    return login(client, wallet)


def seed_project(owner=COMPANY, prize='100', required_skills='react', completion_skills=''):
    """Create a company, a project and return the project dict (requires an app context)."""
    with atomic():
        return create_project(owner, 'X', prize_amount=prize, required_skills=required_skills,
                              completion_skills=completion_skills)


def seed_freelancer(wallet=FREELANCER, skills='react'):
    with atomic():
        return register_profile(wallet, 'freelancer', PASSWORD, skills=skills)
