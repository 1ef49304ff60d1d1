from .core.constants import DEFAULT_PORT
from .main import create_app, load_settings


def main() -> None:
    settings = load_settings()
    app = create_app(settings)
    # The reloader would start a second engine and sweeper.
    app.run(
        host=getattr(settings, "HOST", "0.0.0.0"),
        port=int(getattr(settings, "PORT", DEFAULT_PORT)),
        debug=bool(getattr(settings, "DEBUG", False)),
        use_reloader=False,
    )


if __name__ == "__main__":
    main()
