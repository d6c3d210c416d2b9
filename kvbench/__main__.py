from kvbench.benchmark import run

run()
