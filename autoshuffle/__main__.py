from autoshuffle.ui.cli import main

main()
