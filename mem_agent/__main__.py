"""
Allow running the agent as a module: python -m mem_agent
"""
from mem_agent.agent import main


if __name__ == '__main__':
    main()
