# estimator_api/__init__.py
"""
Keep this file minimal so 'estimator_api' is always a proper package.

Do NOT import submodules here (e.g., don't import main).
Tests and runtime should import from 'estimator_api.main' directly:
    from estimator_api.main import create_app
And Uvicorn should use:
    uvicorn --factory estimator_api.main:create_app
"""
