from cheatsheetai.cli import main

main()
