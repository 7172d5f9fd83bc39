# core/smtp_probe.py
"""
SMTP configuration probe

Tries the usual host/port/TLS combinations for the mailbox configured in
EMAIL_USER/EMAIL_PASSWORD, sends a test message through each one that
connects, and prints the .env lines for the first combination that works.
"""

import argparse
import asyncio
import os
import sys
from dataclasses import dataclass
from typing import Callable, List, Optional

from dotenv import load_dotenv

from core.mailer import ContactMailer, OutgoingEmail, SMTPSettings


@dataclass
class ProbeCandidate:
    name: str
    host: str
    port: int
    secure: bool


@dataclass
class ProbeResult:
    candidate: ProbeCandidate
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


CANDIDATES = [
    ProbeCandidate('Port 587 (STARTTLS)', 'smtp.titan.email', 587, False),
    ProbeCandidate('Port 465 (SSL)', 'smtp.titan.email', 465, True),
    ProbeCandidate('GoDaddy Alternative', 'smtpout.secureserver.net', 465, True),
    ProbeCandidate('GoDaddy Alternative 2', 'smtpout.secureserver.net', 587, False),
]


def default_mailer_factory(candidate: ProbeCandidate, username: str, password: str) -> ContactMailer:
    settings = SMTPSettings(
        host=candidate.host,
        port=candidate.port,
        username=username,
        password=password,
        secure=candidate.secure,
        require_tls=False,
        validate_certs=False,
    )
    return ContactMailer(settings)


async def probe_candidate(candidate: ProbeCandidate,
                          username: str,
                          password: str,
                          send_test: bool = True,
                          mailer_factory: Callable = default_mailer_factory) -> ProbeResult:
    """Verify one candidate and optionally deliver a test message through it"""
    print(f"\nTesting: {candidate.name}")
    print(f"   Host: {candidate.host}:{candidate.port}")
    print(f"   Secure: {candidate.secure}")

    mailer = mailer_factory(candidate, username, password)
    try:
        await mailer.verify()
        print("   ✅ Connection successful!")

        message_id = None
        if send_test:
            result = await mailer.send(OutgoingEmail(
                to=username,
                subject=f"Test: {candidate.name}",
                text=f"Testing {candidate.host}:{candidate.port}",
                from_name='Test',
            ))
            message_id = result.message_id
            print(f"   ✅ Email sent: {message_id}")

        print(f"   🎉 {candidate.name} WORKS!")
        return ProbeResult(candidate=candidate, success=True, message_id=message_id)
    except Exception as e:
        print(f"   ❌ Failed: {e}")
        return ProbeResult(candidate=candidate, success=False, error=str(e))


async def run_probe(candidates: List[ProbeCandidate],
                    username: str,
                    password: str,
                    send_test: bool = True,
                    delay: float = 2.0,
                    mailer_factory: Callable = default_mailer_factory) -> List[ProbeResult]:
    """Probe every candidate in order, pausing between attempts"""
    results = []
    for index, candidate in enumerate(candidates):
        if index and delay > 0:
            await asyncio.sleep(delay)
        results.append(await probe_candidate(
            candidate, username, password, send_test=send_test, mailer_factory=mailer_factory
        ))
    return results


def env_lines(candidate: ProbeCandidate) -> List[str]:
    return [
        f"SMTP_HOST={candidate.host}",
        f"SMTP_PORT={candidate.port}",
        f"SMTP_SECURE={str(candidate.secure).lower()}",
    ]


def print_summary(results: List[ProbeResult]) -> None:
    print('\n' + '=' * 50)
    print('📊 TEST RESULTS SUMMARY')
    print('=' * 50)

    working = [r for r in results if r.success]

    if working:
        print('\n✅ WORKING CONFIGURATIONS:')
        for result in working:
            print(f"\n   {result.candidate.name}")
            print(f"   Host: {result.candidate.host}")
            print(f"   Port: {result.candidate.port}")
            print(f"   Secure: {result.candidate.secure}")

        print('\n💡 UPDATE YOUR .env FILE WITH:')
        for line in env_lines(working[0].candidate):
            print(line)
    else:
        print('\n❌ NO WORKING CONFIGURATIONS FOUND')
        print('\n🔧 NEXT STEPS:')
        print('1. Verify email/password are correct')
        print('2. Log into the mail provider webmail and check the account is active')
        print('3. Check that SMTP access is enabled for the mailbox')
        print('4. Contact the mail provider support')
        print('5. Use a different provider as fallback')

    print('\n' + '=' * 50)


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description='Find a working SMTP configuration for EMAIL_USER')
    parser.add_argument('--verify-only', action='store_true', help='only connect and authenticate, send nothing')
    parser.add_argument('--delay', type=float, default=2.0, help='seconds to wait between candidates')
    args = parser.parse_args(argv)

    load_dotenv()
    username = os.environ.get('EMAIL_USER', '')
    password = os.environ.get('EMAIL_PASSWORD', '')
    if not username or not password:
        print('EMAIL_USER and EMAIL_PASSWORD must be set (environment or .env)', file=sys.stderr)
        return 2

    print('🔧 SMTP CONFIGURATION PROBE')
    print('=' * 50)
    print(f"\n📧 Email: {username}")
    print('🔑 Password: ********')
    print('\nStarting tests...')

    results = asyncio.run(run_probe(
        CANDIDATES, username, password, send_test=not args.verify_only, delay=args.delay
    ))
    print_summary(results)
    return 0 if any(r.success for r in results) else 1


if __name__ == '__main__':
    sys.exit(main())
