from quake_stats.cli import app

if __name__ == "__main__":
    app(prog_name="quake-stats")
