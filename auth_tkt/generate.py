"""
Helper script for issuing an auth ticket.

Be sure that you are using the same secret when running this script as the
applications that will verify the ticket. Set ``TKT_AUTH_SECRET=somesecret``
in your environment to ensure that the same secret is always used.

.. code-block:: bash

   $ TKT_AUTH_SECRET=foosecret generate-ticket
   Username: jbloggs
   Tokens (comma delim) []: editor,admin
   User data []: Joe Bloggs

   <32 hex checksum><8 hex timestamp>jbloggs%21editor%2Cadmin%21Joe+Bloggs

Set the value as the ``auth_tkt`` cookie in your browser or requests.
"""

import os
from typing import Optional

import click

from .authenticator import Authenticator
from .digest import DigestAlgorithm
from .domain import split_tokens
from .policy import Policy


@click.command()
@click.option('--username', prompt='Username')
@click.option('--tokens', prompt='Tokens (comma delim)', default='')
@click.option('--user-data', 'user_data', prompt='User data', default='')
@click.option('--digest', default='MD5',
              type=click.Choice([alg.name for alg in DigestAlgorithm],
                                case_sensitive=False))
@click.option('--remote-addr', 'remote_addr', default=None,
              help='Bind the ticket to this client IPv4 address.')
def generate_ticket(username: str, tokens: str = '', user_data: str = '',
                    digest: str = 'MD5',
                    remote_addr: Optional[str] = None) -> None:
    """Issue an auth ticket for dev/testing purposes."""
    secret = os.environ.get('TKT_AUTH_SECRET')
    if not secret:
        raise click.UsageError('Set TKT_AUTH_SECRET in the environment')
    policy = Policy(secret=secret, digest=digest,
                    check_ip=remote_addr is not None)
    try:
        cookie = Authenticator(policy).issue(username, split_tokens(tokens),
                                             user_data, remote_addr)
    except ValueError as e:
        raise click.BadParameter(str(e)) from e
    click.echo(cookie)


if __name__ == '__main__':
    generate_ticket()
