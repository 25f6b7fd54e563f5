from ebdeploy.cli import main

main()
