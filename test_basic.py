"""
Basic smoke tests: the entry points import and the configuration loads.
"""

import os


def test_pipeline_imports():
    """Test that the pipeline package exposes its public API."""
    try:
        import pipeline
        assert callable(pipeline.StreamDetector)
        assert callable(pipeline.SequentialExecutor)
        assert callable(pipeline.ApprovalGate)
    except ImportError as e:
        assert False, f"Failed to import pipeline: {e}"


def test_main_imports():
    """Test that main.py can be imported without errors."""
    import main
    assert callable(main.main)
    assert callable(main.run_transcript)


def test_config_defaults(tmp_path):
    from config import AppConfig, ApprovalSettings, approval_tool_names

    config = AppConfig()
    config.working_directory = str(tmp_path)
    assert config.hooks_path() == os.path.join(str(tmp_path), ".stream-runner", "hooks.json")

    settings = ApprovalSettings(tools=("Bash", "Write", "Bash"))
    assert approval_tool_names(settings) == ["Bash", "Write"]
