from mcp_slack.server import main

if __name__ == "__main__":
    main()
