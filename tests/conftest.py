# Import the web stack up front: test_cli patches importlib.import_module
# process-wide, which would otherwise intercept fastapi/pydantic's first import.
import fastapi  # noqa: F401
import fastapi.middleware.cors  # noqa: F401
import fastapi.responses  # noqa: F401
