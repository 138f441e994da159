import logging
import re
from urllib.parse import urlparse

import jwt

from .model import SecurityIssue
from .utils import walk

logger = logging.getLogger(__name__)

_JWT_SHAPE = re.compile(r"^[A-Za-z0-9_-]{2,}\.[A-Za-z0-9_-]{2,}\.[A-Za-z0-9_-]*$")


class SecurityScanner:
    """
    Conservative pattern scanner over string values.

    Each rule is a ``_check_<name>(path, value, issues)`` method and is
    enabled by listing ``<name>`` in the ``security_rules`` config key.
    """

    def __init__(self, config=None):
        self.config = config or {}

    def scan(self, value):
        issues = []

        checks = []
        for name in self.config.get("security_rules", ["insecure_url"]):
            check = getattr(self, "_check_{}".format(name), None)
            if check is None:
                raise ValueError("Unknown security rule: {}".format(name))
            checks.append(check)

        for node in walk(value):
            if not isinstance(node.value, str):
                continue
            for check in checks:
                check(node.path, node.value, issues)

        return issues

    # -------------------------------------------------------
    # Rules
    # -------------------------------------------------------

    def _check_insecure_url(self, path, value, issues):
        if not value[:7].lower() == "http://":
            return

        try:
            parsed = urlparse(value)
        except ValueError:
            return

        if not parsed.netloc:
            return

        issue = SecurityIssue(
            path=path,
            kind="insecure-url",
            severity="high",
            message="Insecure URL detected: {}".format(value),
            recommendation="Use HTTPS instead",
        )
        issues.append(issue)

    def _check_embedded_jwt(self, path, value, issues):
        if not _JWT_SHAPE.match(value):
            return

        try:
            header = jwt.get_unverified_header(value)
        except jwt.InvalidTokenError:
            return

        alg = header.get("alg")
        logger.debug("JSON Web Token found at %s (alg=%s)", path, alg)

        if alg is None or str(alg).lower() == "none":
            issue = SecurityIssue(
                path=path,
                kind="sensitive-data",
                severity="high",
                message="Unsigned JSON Web Token (alg 'none') embedded in the document",
                recommendation="Never accept or store tokens that use the 'none' algorithm.",
            )
        else:
            issue = SecurityIssue(
                path=path,
                kind="sensitive-data",
                severity="medium",
                message="JSON Web Token ({}) embedded in the document".format(alg),
                recommendation="Do not store bearer tokens in data documents; keep credentials out of payloads.",
            )
        issues.append(issue)
