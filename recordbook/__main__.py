from recordbook.cli.main import main

raise SystemExit(main())
