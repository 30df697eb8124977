"""Host / domain normalization shared by resolution, uniqueness and caching."""


def normalize(raw: str) -> str:
    """Reduce a host header value or user-typed domain to its comparison key.

    ``" HTTPS://Shop.Example.com:443/x "`` → ``"shop.example.com"``.
    Forwarded lists keep only the first (client-facing) entry. This is not
    validation: unparseable input comes back trimmed and lower-cased.
    """
    value = raw.strip()

    # X-Forwarded-Host: client, proxy1, proxy2
    if "," in value:
        value = value.split(",", 1)[0].strip()

    scheme_sep = value.find("://")
    if scheme_sep != -1:
        value = value[scheme_sep + 3:]

    for sep in ("/", "?", "#"):
        cut = value.find(sep)
        if cut != -1:
            value = value[:cut]

    # Drop userinfo (user:pass@host)
    if "@" in value:
        value = value.rsplit("@", 1)[1]

    # Root label dot may sit after the port ("host:80.")
    value = value.rstrip(".")

    if value.startswith("["):
        # IPv6 literal: [::1]:8080
        end = value.find("]")
        if end != -1:
            value = value[:end + 1]
    elif value.count(":") == 1:
        host, port = value.split(":", 1)
        if port.isdigit() or port == "":
            value = host

    value = value.rstrip(".")
    return value.lower() or raw.strip().lower()
