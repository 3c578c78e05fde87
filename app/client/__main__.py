from app.client.cli import main

main()
