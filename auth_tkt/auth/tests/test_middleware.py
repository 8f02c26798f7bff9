"""Tests for :mod:`auth_tkt.auth.middleware`."""

from unittest import TestCase
from urllib.parse import quote_plus

from werkzeug.test import Client, EnvironBuilder
from werkzeug.wrappers import Response

from .. import middleware
from ...exceptions import ConfigurationError
from ...policy import Policy

SECRET = 'some_random_secret_key'
LOGIN_URL = 'https://www.manheim.com/login'
TIMEOUT_URL = 'https://www.manheim.com/login?timeout=1'
POST_TIMEOUT_URL = 'https://www.manheim.com/login?timeout=2'
BASE_URL = 'https://simulcast.manheim.com/'
PATH = '/simulcast/showBuyerSales.do?filter=AAA'
BACK = quote_plus('https://simulcast.manheim.com/simulcast/showBuyerSales.do'
                  '?filter=AAA')

VALID = ('e400af8d8448df14b22193dfdcebe22b55ce64a9cfloersch%21Workbook%2BOVE'
         '%21Chris%2BFloersch')
MODIFIED = ('e400af8d8448df14b22193dfdcebe22b55ce64a9cfloersch%21Workbook'
            '%2BOVE%21Floersch')
TAMPERED = ('e400af8d8448df14b22193dfdcebe22bffff64a9cfloersch%21Workbook'
            '%2BOVE%21Chris%2BFloersch')
MALFORMED = '00112233445566778899aabbccddeeff00000000cfloersch'
INVALID = '00112233445566778899aabbccddeeff00000000cfloersch!Chris'


class EchoApp(object):
    """Records the environ of each request it receives."""

    def __init__(self):
        self.environ = None

    def __call__(self, environ, start_response):
        self.environ = environ
        response = Response(environ.get('REMOTE_USER', ''))
        return response(environ, start_response)


class MiddlewareTestCase(TestCase):
    """Wraps an :class:`EchoApp` in the middleware."""

    config = {
        'TKTAuthSecret': SECRET,
        'TKTAuthIgnoreIP': 'on',
        'TKTAuthTimeout': '0',
        'TKTAuthLoginURL': LOGIN_URL,
    }

    def setUp(self):
        """Build the middleware from ``config``."""
        self.app = EchoApp()
        self.middleware = middleware.AuthTicketMiddleware.from_config(
            self.app, self.config
        )
        self.client = Client(self.middleware, use_cookies=False)

    def request(self, cookie=None, method='GET', headers=None, path=PATH,
                base_url=BASE_URL):
        headers = dict(headers or {})
        if cookie is not None:
            headers['Cookie'] = cookie
        return self.client.open(path, method=method, headers=headers,
                                base_url=base_url,
                                environ_base={'REMOTE_ADDR': '192.168.1.12'})

    def assertRedirects(self, response, target):
        self.assertEqual(response.status_code, 302)
        self.assertEqual(response.headers['Location'], f'{target}{BACK}')
        self.assertIsNone(self.app.environ)

    def assertGuest(self, response):
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.app.environ['REMOTE_USER'], 'guest')
        self.assertEqual(self.app.environ['AUTH_TYPE'], 'AUTH_TKT')
        self.assertEqual(self.app.environ['TKT_AUTH_TOKENS'], ())
        self.assertNotIn('TKT_AUTH_USER_DATA', self.app.environ)


class TestLoginOnly(MiddlewareTestCase):
    """Only a login URL is configured; expiry is disabled."""

    def test_no_cookie(self):
        """The client is sent to log in."""
        self.assertRedirects(self.request(), f'{LOGIN_URL}?back=')

    def test_misnamed_cookie(self):
        """A cookie with another name is ignored."""
        self.assertRedirects(self.request(f'MisNamed={VALID}'),
                             f'{LOGIN_URL}?back=')

    def test_empty_cookie(self):
        """An empty ticket is no ticket."""
        self.assertRedirects(self.request('auth_tkt='), f'{LOGIN_URL}?back=')

    def test_malformed_cookie(self):
        """An unparseable ticket is no ticket."""
        self.assertRedirects(self.request(f'auth_tkt={MALFORMED}'),
                             f'{LOGIN_URL}?back=')

    def test_invalid_cookie(self):
        """A forged ticket is rejected."""
        self.assertRedirects(self.request(f'auth_tkt={INVALID}'),
                             f'{LOGIN_URL}?back=')

    def test_newline_in_checksum(self):
        """A checksum cut short by an escaped newline is no ticket."""
        cookie = 'a' * 31 + '%0A00000220cfloersch%21data'
        self.assertRedirects(self.request(f'auth_tkt={cookie}'),
                             f'{LOGIN_URL}?back=')

    def test_explicit_port(self):
        """The port of the original request is kept in the back URL."""
        response = self.request(f'auth_tkt={INVALID}',
                                base_url='https://simulcast.manheim.com:8080/')
        back = quote_plus('https://simulcast.manheim.com:8080/simulcast/'
                          'showBuyerSales.do?filter=AAA')
        self.assertEqual(response.headers['Location'],
                         f'{LOGIN_URL}?back={back}')

    def test_forwarded_headers(self):
        """The original URL is rebuilt from proxy headers."""
        response = self.request(
            base_url='http://sim-dc3prod-web01.imanheim.com/',
            headers={'X-Forwarded-Proto': 'https',
                     'X-Forwarded-Host': 'simulcast.manheim.com'}
        )
        self.assertRedirects(response, f'{LOGIN_URL}?back=')

    def test_valid(self):
        """Identity is passed to the application."""
        response = self.request(f'auth_tkt={VALID}')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_data(as_text=True), 'cfloersch')
        environ = self.app.environ
        self.assertEqual(environ['REMOTE_USER'], 'cfloersch')
        self.assertEqual(environ['AUTH_TYPE'], 'AUTH_TKT')
        self.assertEqual(environ['TKT_AUTH_USER_DATA'], 'Chris+Floersch')
        self.assertIn('Workbook+OVE', environ['TKT_AUTH_TOKENS'])
        self.assertNotIn('Simulcast', environ['TKT_AUTH_TOKENS'])
        self.assertEqual(environ[middleware.ENVIRON_KEY].username,
                         'cfloersch')

    def test_modified(self):
        """A ticket with altered user data is rejected."""
        self.assertRedirects(self.request(f'auth_tkt={MODIFIED}'),
                             f'{LOGIN_URL}?back=')

    def test_options(self):
        """Preflight requests are not authenticated."""
        response = self.request(method='OPTIONS')
        self.assertEqual(response.status_code, 200)
        self.assertNotIn('REMOTE_USER', self.app.environ)


class TestTimeoutURLs(MiddlewareTestCase):
    """Default expiry, with timeout URLs."""

    config = {
        'TKTAuthSecret': SECRET,
        'TKTAuthIgnoreIP': 'on',
        'TKTAuthLoginURL': LOGIN_URL,
        'TKTAuthTimeoutURL': TIMEOUT_URL,
        'TKTAuthPostTimeoutURL': POST_TIMEOUT_URL,
    }

    def test_no_cookie(self):
        """Without a ticket the client is sent to log in."""
        self.assertRedirects(self.request(), f'{LOGIN_URL}?back=')

    def test_malformed_cookie(self):
        """A malformed ticket is not an expired ticket."""
        self.assertRedirects(self.request(f'auth_tkt={MALFORMED}'),
                             f'{LOGIN_URL}?back=')

    def test_expired_get(self):
        """An expired ticket sends the client to the timeout URL."""
        self.assertRedirects(self.request(f'auth_tkt={VALID}'),
                             f'{TIMEOUT_URL}&back=')

    def test_expired_post(self):
        """POST requests use the post timeout URL."""
        self.assertRedirects(self.request(f'auth_tkt={VALID}', method='POST'),
                             f'{POST_TIMEOUT_URL}&back=')


class TestTimeoutFallsBackToLogin(MiddlewareTestCase):
    """Default expiry, without timeout URLs."""

    config = {
        'TKT_AUTH_SECRET': SECRET,
        'TKT_AUTH_LOGIN_URL': LOGIN_URL,
    }

    def test_expired(self):
        """An expired ticket sends the client to log in."""
        self.assertRedirects(self.request(f'auth_tkt={VALID}', method='POST'),
                             f'{LOGIN_URL}?back=')


class TestGuestLogin(MiddlewareTestCase):
    """Guests are allowed, but expired tickets must log in again."""

    config = {
        'TKTAuthSecret': SECRET,
        'TKTAuthIgnoreIP': 'on',
        'TKTAuthLoginURL': LOGIN_URL,
        'TKTAuthTimeoutURL': TIMEOUT_URL,
        'TKTAuthPostTimeoutURL': POST_TIMEOUT_URL,
        'TKTAuthGuestLogin': 'on',
    }

    def test_no_cookie(self):
        """Without a ticket the client is a guest."""
        self.assertGuest(self.request())

    def test_misnamed_cookie(self):
        """With a cookie of another name the client is a guest."""
        self.assertGuest(self.request(f'MisNamed={VALID}'))

    def test_empty_cookie(self):
        """With an empty ticket the client is a guest."""
        self.assertGuest(self.request('auth_tkt='))

    def test_malformed_cookie(self):
        """With an unparseable ticket the client is a guest."""
        self.assertGuest(self.request(f'auth_tkt={MALFORMED}'))

    def test_invalid_cookie(self):
        """With a forged ticket the client is a guest."""
        self.assertGuest(self.request(
            'auth_tkt=00112233445566778899aabbccddeeffffffffffcfloersch!Chris'
        ))

    def test_tampered(self):
        """With a tampered ticket the client is a guest."""
        self.assertGuest(self.request(f'auth_tkt={TAMPERED}'))

    def test_expired_get(self):
        """An expired ticket still sends the client to the timeout URL."""
        self.assertRedirects(self.request(f'auth_tkt={VALID}'),
                             f'{TIMEOUT_URL}&back=')

    def test_expired_post(self):
        """An expired POST is sent to the post timeout URL."""
        self.assertRedirects(self.request(f'auth_tkt={VALID}', method='POST'),
                             f'{POST_TIMEOUT_URL}&back=')


class TestGuestFallback(TestGuestLogin):
    """Guests are allowed, and expired tickets are treated as guests."""

    config = dict(TestGuestLogin.config, TKTAuthGuestFallback='on',
                  TKTAuthGuestUser='visitor')

    def assertGuest(self, response):
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.app.environ['REMOTE_USER'], 'visitor')
        self.assertEqual(self.app.environ['AUTH_TYPE'], 'AUTH_TKT')
        self.assertIsNone(self.app.environ[middleware.ENVIRON_KEY])

    def test_expired_get(self):
        """An expired ticket makes the client a guest."""
        self.assertGuest(self.request(f'auth_tkt={VALID}'))

    def test_expired_post(self):
        """An expired POST makes the client a guest."""
        self.assertGuest(self.request(f'auth_tkt={VALID}', method='POST'))


class TestRequiredTokens(MiddlewareTestCase):
    """A token is required, with a separate unauthorized URL."""

    config = {
        'TKTAuthSecret': SECRET,
        'TKTAuthIgnoreIP': 'on',
        'TKTAuthTimeout': '0',
        'TKTAuthLoginURL': 'https://www.manheim.com/login?type=auth',
        'TKTAuthUnauthURL': 'https://www.manheim.com/login?type=role',
        'TKTAuthToken': 'Simulcast',
    }

    def test_invalid_cookie(self):
        """A forged ticket is sent to log in."""
        self.assertRedirects(self.request(f'auth_tkt={INVALID}'),
                             'https://www.manheim.com/login?type=auth&back=')

    def test_token_missing(self):
        """An authentic ticket without the token is sent elsewhere."""
        self.assertRedirects(self.request(f'auth_tkt={VALID}'),
                             'https://www.manheim.com/login?type=role&back=')

    def test_token_present(self):
        """A ticket carrying any required token is accepted."""
        self.middleware = middleware.AuthTicketMiddleware.from_config(
            self.app, dict(self.config, TKTAuthToken='Workbook+OVE,Simulcast')
        )
        self.client = Client(self.middleware, use_cookies=False)
        response = self.request(f'auth_tkt={VALID}')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.app.environ['REMOTE_USER'], 'cfloersch')


class TestURLPattern(MiddlewareTestCase):
    """Only matching paths are protected."""

    config = dict(MiddlewareTestCase.config,
                  TKTUrlPattern=r'^/simulcast/.*\.do$')

    def test_matching_path(self):
        """Matching paths require a ticket."""
        self.assertRedirects(self.request(), f'{LOGIN_URL}?back=')

    def test_other_path(self):
        """Other paths are passed through without authentication."""
        response = self.request(path='/static/logo.png')
        self.assertEqual(response.status_code, 200)
        self.assertNotIn('REMOTE_USER', self.app.environ)


class TestAddressBinding(MiddlewareTestCase):
    """Tickets are bound to the client address."""

    config = dict(MiddlewareTestCase.config, TKTAuthIgnoreIP='off')

    def issue(self, remote_addr):
        return self.middleware.authenticator.issue('cfloersch',
                                                   remote_addr=remote_addr)

    def test_same_address(self):
        """A ticket is accepted from the address it was issued to."""
        cookie = self.issue('192.168.1.12')
        response = self.request(f'auth_tkt={cookie}')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_data(as_text=True), 'cfloersch')

    def test_other_address(self):
        """A ticket is rejected from another address."""
        cookie = self.issue('10.1.2.3')
        self.assertRedirects(self.request(f'auth_tkt={cookie}'),
                             f'{LOGIN_URL}?back=')

    def test_forwarded_for_not_trusted(self):
        """Claiming the bound address in a header does not help."""
        cookie = self.issue('10.1.2.3')
        response = self.request(f'auth_tkt={cookie}',
                                headers={'X-Forwarded-For': '10.1.2.3'})
        self.assertRedirects(response, f'{LOGIN_URL}?back=')


class TestConfiguration(TestCase):
    """Tests for middleware configuration."""

    def test_login_url_required(self):
        """A login URL is required unless guests are allowed."""
        with self.assertRaises(ConfigurationError):
            middleware.AuthTicketMiddleware(EchoApp(), Policy(secret=SECRET))
        middleware.AuthTicketMiddleware(EchoApp(), Policy(secret=SECRET),
                                        guest_login=True)

    def test_relative_url(self):
        """Redirect targets must be absolute."""
        for url in ('/login', 'ftp://www.manheim.com/login', 'not a url'):
            with self.assertRaises(ConfigurationError):
                middleware.AuthTicketMiddleware(EchoApp(),
                                                Policy(secret=SECRET),
                                                login_url=url)

    def test_bad_timeout(self):
        """An unparseable timeout is a configuration error."""
        with self.assertRaises(ConfigurationError):
            middleware.AuthTicketMiddleware.from_config(EchoApp(), {
                'TKTAuthSecret': SECRET,
                'TKTAuthLoginURL': LOGIN_URL,
                'TKTAuthTimeout': 'whenever',
            })

    def test_missing_secret(self):
        """A secret is required."""
        with self.assertRaises(ConfigurationError):
            middleware.AuthTicketMiddleware.from_config(EchoApp(), {
                'TKTAuthLoginURL': LOGIN_URL,
            })

    def test_bad_pattern(self):
        """An invalid URL pattern is a configuration error."""
        with self.assertRaises(ConfigurationError):
            middleware.AuthTicketMiddleware(EchoApp(), Policy(secret=SECRET),
                                            login_url=LOGIN_URL,
                                            url_pattern='(unclosed')


class TestBackURL(TestCase):
    """Tests for :func:`.middleware.back_url`."""

    def test_separator(self):
        """The parameter is appended with the right separator."""
        request = EnvironBuilder(path='/a', base_url='https://x.test/',
                                 query_string='b=c').get_request()
        self.assertEqual(middleware.back_url('https://y.test/login', request),
                         'https://y.test/login?back='
                         + quote_plus('https://x.test/a?b=c'))
        self.assertEqual(middleware.back_url('https://y.test/l?z=1', request),
                         'https://y.test/l?z=1&back='
                         + quote_plus('https://x.test/a?b=c'))
