from scn_planes.cli import main

main()
