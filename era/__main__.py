from era.main import run

run()
