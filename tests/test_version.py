from dxbuild.version import CommitInfo, VersionInfo, version_info

FULL_ENV = {
    "CFG_RELEASE": "1.2.3",
    "CFG_RELEASE_CHANNEL": "stable",
    "RA_COMMIT_SHORT_HASH": "abc1234",
    "RA_COMMIT_HASH": "abc1234def",
    "RA_COMMIT_DATE": "2023-01-01",
}


def test_defaults_without_environment():
    info = version_info({})
    assert info.version == "0.0.0"
    assert info.release_channel is None
    assert info.commit_info is None
    assert str(info) == "0.0.0"


def test_full_environment():
    info = version_info(FULL_ENV)
    assert info.version == "1.2.3"
    assert info.release_channel == "stable"
    assert info.commit_info == CommitInfo("abc1234", "abc1234def", "2023-01-01")
    assert str(info) == "1.2.3 (abc1234 2023-01-01)"


def test_partial_commit_info_is_dropped():
    env = dict(FULL_ENV)
    del env["RA_COMMIT_HASH"]
    info = version_info(env)
    assert info.commit_info is None
    assert str(info) == env["CFG_RELEASE"]


def test_str_without_commit():
    assert str(VersionInfo("4.5.6")) == "4.5.6"