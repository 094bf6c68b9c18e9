"""
Smoke tests to verify all modules can be imported.
"""


def test_import_coach_core():
    import coach_core
    assert hasattr(coach_core, '__version__')


def test_import_llm():
    import llm
    assert hasattr(llm, '__version__')


def test_import_sandbox():
    import sandbox
    assert hasattr(sandbox, '__version__')


def test_import_session():
    import session
    assert hasattr(session, '__version__')
