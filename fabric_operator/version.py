#: The major release buckets for Fabric
V1 = "1"
V2 = "2"

#: Fabric versions at which staged migrations are required
V2_4_1 = "2.4.1"
V2_5_1 = "2.5.1"

#: Placeholder for a Fabric version that is not recognised
UNSUPPORTED = "unsupported"

#: Fabric 1.4.x versions that were supported before migrations were introduced
LEGACY_FABRIC_VERSIONS = {
    "1.4.2": "1.4.2",
    "1.4.3": "1.4.3",
    "1.4.4": "1.4.4",
    "1.4.5": "1.4.5",
    "1.4.6": "1.4.6",
    "V1.4": "V1.4",
    UNSUPPORTED: UNSUPPORTED,
}


def strip_version_prefix(version):
    """
    Returns the version without a leading v, matched case-insensitively.
    """
    return (version or "").lower().removeprefix("v")


def _to_int(value):
    """
    Converts a version component to an integer, treating anything that is not a
    number as zero.
    """
    return int(value) if value.isdigit() else 0


class Version:
    """
    Represents a Fabric version of the form major.minor.patch with an optional
    numeric build tag, e.g. 2.5.1-2.
    """
    def __init__(self, version):
        version = strip_version_prefix(version)
        release, _, tag = version.partition("-")
        parts = release.split(".")
        # Missing components are treated as zero
        parts.extend(["0"] * (3 - len(parts)))
        self.major = _to_int(parts[0])
        self.minor = _to_int(parts[1])
        self.patch = _to_int(parts[2])
        self.tag = _to_int(tag)

    @property
    def release(self):
        return (self.major, self.minor, self.patch)

    def format(self, tag = True):
        version = f"{self.major}.{self.minor}.{self.patch}"
        if tag and self.tag:
            version = f"{version}-{self.tag}"
        return version

    def __str__(self):
        return self.format()

    def __repr__(self):
        return f"Version({self.format()!r})"

    def equal(self, other):
        """
        Returns true if the versions are equal, including the tag.
        """
        return self.release == other.release and self.tag == other.tag

    def equal_without_tag(self, other):
        """
        Returns true if the versions have the same major, minor and patch.
        """
        return self.release == other.release

    def greater_than(self, other):
        # Tuples compare elementwise, i.e. major then minor then patch
        return self.release > other.release

    def less_than(self, other):
        return not self.greater_than(other) and not self.equal_without_tag(other)


def _version(value):
    return value if isinstance(value, Version) else Version(value)


def equal(a, b):
    return _version(a).equal(_version(b))


def equal_without_tag(a, b):
    return _version(a).equal_without_tag(_version(b))


def greater_than(a, b):
    return _version(a).greater_than(_version(b))


def less_than(a, b):
    return _version(a).less_than(_version(b))


def at_least(a, b):
    """
    Returns true if a is equal to, ignoring the tag, or greater than b.
    """
    return equal_without_tag(a, b) or greater_than(a, b)


def get_major_release_version(version):
    """
    Returns the major release bucket for the given Fabric version.

    Anything that is not recognisably a 2.x version, including the empty string,
    belongs to the V1 bucket.
    """
    version = strip_version_prefix(version)
    major = version.split(".")[0]
    if major == V2:
        return V2
    return V1


def fabric_version_from_image_tag(tag):
    """
    Returns the Fabric version encoded in an image tag of the form
    <version>-<date>-<arch>, or an empty string if the tag has another form.
    """
    parts = (tag or "").split("-")
    if len(parts) == 3:
        return parts[0]
    return ""


def legacy_fabric_version(version):
    """
    Returns the legacy Fabric version for the given version, or unsupported.
    """
    return LEGACY_FABRIC_VERSIONS.get(version, UNSUPPORTED)


def is_legacy_fabric_version(version):
    """
    Returns true if the given version is one of the legacy Fabric versions that
    predate staged migrations.
    """
    return version in LEGACY_FABRIC_VERSIONS
