import pytest

from auth_tkt import factory

SECRET = 'some_random_secret_key'


@pytest.fixture()
def app():
    return factory.create_web_app(TKT_AUTH_SECRET=SECRET,
                                  TKT_AUTH_TIMEOUT='2h',
                                  TKT_AUTH_LOGIN_URL=None,
                                  TKT_AUTH_GUEST_LOGIN='off')


@pytest.fixture()
def client(app):
    return app.test_client(use_cookies=False)


@pytest.fixture()
def request_context(app):
    yield app.test_request_context()


@pytest.fixture()
def pushed_request_context(app):
    with app.test_request_context():
        yield
