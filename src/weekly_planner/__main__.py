from weekly_planner.cli.main import main

main()
