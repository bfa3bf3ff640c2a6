from candleworks import create_app

app = create_app()
